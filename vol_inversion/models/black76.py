import logging
import warnings

import numpy as np
from numpy.typing import ArrayLike
from scipy.optimize import bisect, newton

from vol_inversion.util import EPSILON, ONE_OVER_SQRT_TWO_PI, norm_cdf, norm_pdf

logger = logging.getLogger(__name__)


def _sign(is_call: ArrayLike) -> np.ndarray:
    return np.where(np.asarray(is_call, dtype=bool), 1.0, -1.0)


def _d1_d2(f, k, t, sigma):
    total_vol = sigma * np.sqrt(t)
    d1 = np.log(f / k) / total_vol + 0.5 * total_vol
    return d1, d1 - total_vol


def black76_price(
    df: ArrayLike,
    f: ArrayLike,
    k: ArrayLike,
    t: ArrayLike,
    sigma: ArrayLike,
    is_call: ArrayLike,
) -> ArrayLike:
    """Black 76 pricing function.

    Args:
        df: Discount factor
        f: Forward
        k: Strike
        t: Time to maturity (year fraction)
        sigma: Volatility
        is_call: call/put flag

    Returns: Contract price
    """
    df, f, k, t, sigma = map(lambda x: np.asarray(x, dtype=float), (df, f, k, t, sigma))
    sign = _sign(is_call)

    with np.errstate(divide="ignore", invalid="ignore"):
        d1, d2 = _d1_d2(f, k, t, sigma)
        value = sign * (f * norm_cdf(sign * d1) - k * norm_cdf(sign * d2))

    # zero total variance leaves the intrinsic value
    intrinsic = np.maximum(sign * (f - k), 0.0)
    return df * np.where(sigma * sigma * t > 0.0, value, intrinsic)


def black76_straddle_price(df: ArrayLike, f: ArrayLike, k: ArrayLike, t: ArrayLike, sigma: ArrayLike) -> ArrayLike:
    """Price of a call plus a put with the same strike."""
    return black76_price(df, f, k, t, sigma, True) + black76_price(df, f, k, t, sigma, False)


def black76_digital_price(df: ArrayLike, f: ArrayLike, k: ArrayLike, t: ArrayLike, sigma: ArrayLike) -> ArrayLike:
    """Cash-or-nothing digital call paying one unit if the forward ends above the strike."""
    df, f, k, t, sigma = map(lambda x: np.asarray(x, dtype=float), (df, f, k, t, sigma))
    with np.errstate(divide="ignore", invalid="ignore"):
        _, d2 = _d1_d2(f, k, t, sigma)
    return df * np.where(sigma * sigma * t > 0.0, norm_cdf(d2), np.where(f > k, 1.0, 0.0))


def black76_vega(
    df: ArrayLike,
    f: ArrayLike,
    k: ArrayLike,
    t: ArrayLike,
    sigma: ArrayLike,
) -> ArrayLike:
    """Calculate the Black-76 vega for european options."""
    df, f, k, t, sigma = map(lambda x: np.asarray(x, dtype=float), (df, f, k, t, sigma))

    d1, _ = _d1_d2(f, k, t, sigma)
    return df * f * norm_pdf(d1) * np.sqrt(t)


def normalised_call(x: float, v: float) -> float:
    """Undiscounted call divided by the forward, as a function of ``x = ln(F/K)`` and total volatility ``v``."""
    if v <= 0.0:
        return max(1.0 - np.exp(-x), 0.0)
    return float(norm_cdf(x / v + 0.5 * v) - np.exp(-x) * norm_cdf(x / v - 0.5 * v))


def normalised_call_jaeckel(x: float, s: float) -> float:
    """Call price scaled by ``sqrt(F K)`` (Jaeckel's ``b(x, s)``), for an out-of-the-money call ``x <= 0``."""
    if abs(x) < EPSILON:
        return float(1.0 - 2.0 * norm_cdf(-0.5 * s))
    h = np.exp(0.5 * x)
    return float(h * norm_cdf(x / s + 0.5 * s) - norm_cdf(x / s - 0.5 * s) / h)


def normalised_vega_jaeckel(x: float, s: float) -> float:
    """Derivative of ``b(x, s)`` with respect to ``s``."""
    return float(ONE_OVER_SQRT_TWO_PI * np.exp(-0.5 * x * x / (s * s) - 0.125 * s * s))


def implied_vol_simple(
    df: float,
    f: float,
    k: float,
    t: float,
    p: float,
    is_call: bool,
    x0: float = 0.3,
) -> float | None:
    """Reference inversion with scipy's Newton-Raphson, falling back to bisection."""
    try:
        return newton(
            func=lambda x: black76_price(df, f, k, t, x, is_call) - p,
            fprime=lambda x: black76_vega(df, f, k, t, x),
            x0=x0,
            tol=1e-12,
            rtol=1e-10,
            maxiter=200,
        )
    except (RuntimeError, ArithmeticError) as e:
        warnings.warn(
            f"Newton-Raphson did not find a root because of the following exception occurred: {e}. "
            f"Trying bisection next...",
            stacklevel=2,
        )
        try:
            return bisect(
                f=lambda x: black76_price(df, f, k, t, x, is_call) - p,
                a=0.00001,
                b=3,
                xtol=1e-12,
                rtol=1e-10,
            )
        except (RuntimeError, ValueError) as e:
            msg = f"Bisection did not find a root because of the following exception occurred: {e}."
            warnings.warn(msg, stacklevel=2)
            logger.warning(msg)
            return None
