"""Closed-form approximations of the inverse pricing functions.

All functions work on the canonical out-of-the-money call problem (``x <= 0``) and return total volatility
``sigma * sqrt(T)``.

References:
    Lee, Lee (2017) "Implied volatility: a successive over-relaxation approach"
    Li (2008) "Approximate inversion of the Black-Scholes formula using rational functions"
    Jaeckel (2015) "Let's be rational"
    Choi, Kim, Kwak (2009) "Numerical approximation of the implied volatility under arithmetic Brownian motion"
"""

import math

import numpy as np

from vol_inversion.models.black76 import normalised_call_jaeckel
from vol_inversion.protocols import ImpliedResult
from vol_inversion.util import EPSILON, norm_cdf, norm_ppf

# (numerator, denominator) coefficients of x^i c^j, keyed by (i, j)
_REGRESSION = {
    (0, 0): (-0.00006103098165, 1.0),
    (0, 1): (5.33967643357688, 22.96302109010794),
    (1, 0): (-0.40661990365427, -0.48466536361620),
    (0, 2): (3.25023425332360, -0.77268824532468),
    (1, 1): (-36.19405221599028, -1.34102279982050),
    (2, 0): (0.08975394404851, 0.43027619553168),
    (0, 3): (83.84593224417796, -5.70531500645109),
    (1, 2): (41.21772632732834, 2.45782574294244),
    (2, 1): (3.83815885394565, -0.04763802358853),
    (3, 0): (-0.21619763215668, -0.03326944290044),
}

_LI_P = (-0.969271876255, 0.097428338274, 1.750081126685)

# (n_ij, m_ij) coefficients of x^i sqrt(c)^j
_LI = {
    (0, 1): (-0.068098378725, 6.268456292246),
    (1, 0): (0.440639436211, -6.284840445036),
    (0, 2): (-0.263473754689, 30.068281276567),
    (1, 1): (-5.792537721792, -11.780036995036),
    (2, 0): (-5.267481008429, -2.310966989723),
    (0, 3): (4.714393825758, -11.473184324152),
    (1, 2): (3.529944137559, -230.101682610568),
    (2, 1): (-23.636495876611, 86.127219899668),
    (3, 0): (-9.020361771283, 3.730181294225),
    (0, 4): (14.749084301452, -13.954993561151),
    (1, 3): (-32.570660102526, 261.950288864225),
    (2, 2): (76.398155779133, 20.090690444187),
    (3, 1): (41.855161781749, -50.117067019539),
    (4, 0): (-12.150611865704, 13.723711519422),
}

_CKK_A = (
    3.994961687345134e-1,
    2.100960795068497e1,
    4.980340217855084e1,
    5.988761102690991e2,
    1.848489695437094e3,
    6.106322407867059e3,
    2.493415285349361e4,
    1.266458051348246e4,
)
_CKK_B = (
    1.0,
    4.990534153589422e1,
    3.093573936743112e1,
    1.495105008310999e3,
    1.323614537899738e3,
    1.598919697679745e4,
    2.392008891720782e4,
    3.608817108375034e3,
    -2.067719486400926e2,
    1.174240599306013e1,
)
_CKK_ETA_MIN = 0.049


def atm_total_vol(beta: float) -> float:
    """Exact inverse of the at-the-money normalised call ``beta = 1 - 2 N(-v/2)``."""
    return float(-2.0 * norm_ppf(0.5 - 0.5 * beta))


def rational_regression_guess(x: float, c0: float) -> float:
    """Ratio of two bivariate cubics in ``(x, c0)`` fitted to the inverse Black function."""
    num = den = 0.0
    for (i, j), (m, n) in _REGRESSION.items():
        term = x**i * c0**j
        num += m * term
        den += n * term

    v = num / den
    if not (math.isfinite(v) and v > 0.0):
        # inflection point of the normalised call in total vol
        v = math.sqrt(2.0 * abs(x))
    return v


def li_bounds(x: float) -> tuple[float, float]:
    """Lower and upper price curves enclosing the region where the Li approximation is fitted."""
    lower = (-0.00424532412773 * x + 0.00099075112125 * x * x) / (
        1.0 + 0.26674393279214 * x + 0.03360553011959 * x * x
    )
    upper = (0.38292495908775 + 0.31382372544666 * x + 0.07116503261172 * x * x) / (
        1.0 + 0.01380361926221 * x + 0.11791124749938 * x * x
    )
    return lower, upper


def li_rational_approximation(x: float, c0: float) -> ImpliedResult:
    """Rational approximation of the total volatility, accurate enough to be returned without refinement.

    Returns ``NO_PROPER_RESULT`` outside ``x >= -0.5`` and the band given by :func:`li_bounds`.
    """
    if abs(x) < EPSILON:
        return ImpliedResult.proper(atm_total_vol(c0))

    lower, upper = li_bounds(x)
    if x < -0.5 or c0 < lower or c0 > upper:
        return ImpliedResult.no_proper()

    s = math.sqrt(c0)
    num = den = 0.0
    for (i, j), (n, m) in _LI.items():
        term = x**i * s**j
        num += n * term
        den += m * term

    p1, p2, p3 = _LI_P
    return ImpliedResult.proper(p1 * x + p2 * s + p3 * c0 + num / (1.0 + den))


def _sigma_low(x: float, beta: float, bc: float) -> float:
    denominator = abs(x) - 4.0 * math.log(beta / bc)
    if denominator <= 0.0:
        return math.nan
    return math.sqrt(2.0 * x * x / denominator)


def _sigma_high(x: float, beta: float, bc: float) -> float:
    b_max = math.exp(0.5 * x)
    return float(-2.0 * norm_ppf((b_max - beta) / (b_max - bc) * norm_cdf(-math.sqrt(0.5 * abs(x)))))


def jaeckel_guess(x: float, beta: float) -> tuple[float, float]:
    """Blend of a low and a high volatility estimate for the normalised price ``beta = c0 exp(x / 2)``.

    Returns:
        The initial total volatility and the reference price ``bc`` at ``sqrt(2 |x|)``.
    """
    bc = normalised_call_jaeckel(x, math.sqrt(2.0 * abs(x)))
    sigma_low = _sigma_low(x, beta, bc)
    sigma_high = _sigma_high(x, beta, bc)
    if math.isnan(sigma_low):
        return sigma_high, bc

    b_max = math.exp(0.5 * x)
    sigma_star = float(-2.0 * norm_ppf(b_max / (b_max - bc) * norm_cdf(-math.sqrt(0.5 * abs(x)))))
    b_star = normalised_call_jaeckel(x, sigma_star)
    sigma_low_star = _sigma_low(x, b_star, bc)
    sigma_high_star = _sigma_high(x, b_star, bc)

    log_star = math.log(bc / b_star)
    if log_star == 0.0:
        return sigma_high, bc

    w = np.clip((sigma_star - sigma_low_star) / (sigma_high_star - sigma_low_star), 0.0, 1.0)
    w = w ** (math.log(bc / beta) / log_star)
    w = float(np.clip(w, 0.0, 1.0))
    if not math.isfinite(w):
        return sigma_high, bc

    return sigma_low * (1.0 - w) + sigma_high * w, bc


def choi_kim_kwak(x: float, c0: float) -> ImpliedResult:
    """Bachelier total volatility from the straddle value, for ``x = F - K`` and undiscounted call ``c0``.

    Returns ``INPUT_ERROR`` if the straddle is not worth more than ``|x|`` and ``NO_PROPER_RESULT`` if the
    moneyness ratio falls outside the fitted range.
    """
    straddle = 2.0 * c0 - x
    if not straddle > 0.0:
        return ImpliedResult.input_error()

    u = x / straddle
    if abs(u) >= 1.0:
        return ImpliedResult.input_error()

    eta = 1.0 if abs(u) < EPSILON else u / math.atanh(u)
    if not _CKK_ETA_MIN <= eta <= 1.0:
        return ImpliedResult.no_proper()

    a = np.polynomial.polynomial.polyval(eta, _CKK_A)
    b = np.polynomial.polynomial.polyval(eta, _CKK_B)
    return ImpliedResult.proper(math.sqrt(0.5 * math.pi) * straddle * math.sqrt(eta) * a / b)
