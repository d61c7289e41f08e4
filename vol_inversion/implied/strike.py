"""Implied strike by Newton iteration on ``H(K) = ln(f(K) / V)``.

The straddle price is flat in the strike at its minimum, where Newton's method breaks down. Close to that point the
straddle is replaced by its fourth-order expansion around the minimum and the expansion is solved for the strike.
"""

import logging
import math
from collections.abc import Callable

from vol_inversion.models.bachelier import bachelier_straddle_price
from vol_inversion.models.black76 import black76_straddle_price
from vol_inversion.protocols import ImpliedResult
from vol_inversion.util import (
    EPSILON,
    ONE_OVER_SQRT_TWO_PI,
    SUPER_TINY_EPSILON,
    TINY_EPSILON,
    norm_cdf,
    norm_pdf,
    norm_ppf,
    real_polynomial_roots,
)

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 1000


def _checked(k: float, converged: bool, label: str) -> ImpliedResult:
    if not math.isfinite(k):
        return ImpliedResult.input_error()
    if not converged:
        msg = f"{label} implied strike did not converge; last iterate {k}."
        logger.warning(msg)
        return ImpliedResult.no_proper(k)
    return ImpliedResult.proper(k)


def _valid_inputs(vol: float, t: float, price: float) -> bool:
    return all(math.isfinite(v) for v in (vol, t, price)) and vol > 0.0 and t >= 0.0 and price > 0.0


def _close(f: float, target: float) -> bool:
    return abs(target - f) < abs(target) * TINY_EPSILON


def straddle_quartic_offset(target: float, a: float, straddle: Callable[[float], float]) -> float:
    """Offset ``m`` from the straddle minimum that reproduces ``target`` under the quartic expansion.

    The straddle around its minimum is approximated by ``2a + m^2 / (2 pi a) - m^4 / (48 pi^2 a^3)`` where
    ``2a`` is the minimum value. The expansion is even in ``m``, so its real roots are ``+-sqrt(z)`` for the
    non-negative real roots ``z`` of the quadratic in ``m^2``. The root whose exact price ``straddle(m)`` is
    closest to the target is returned.

    Raises:
        ArithmeticError: if the expansion has no real root.
    """
    coefficients = [2.0 * a - target, 1.0 / (2.0 * math.pi * a), -1.0 / (48.0 * math.pi**2 * a**3)]
    squares = real_polynomial_roots(coefficients)
    floor = -TINY_EPSILON * max([1.0, *(abs(z) for z in squares)])
    roots = [s * math.sqrt(max(z, 0.0)) for z in squares if z >= floor for s in (1.0, -1.0)]
    if not roots:
        msg = f"Straddle expansion has no real root for target {target} and half minimum {a}."
        raise ArithmeticError(msg)

    return min(roots, key=lambda m: abs(straddle(m) - target))


# ---------------------------------------------------------------------------------------------------------------------
# Black
# ---------------------------------------------------------------------------------------------------------------------


def black_implied_strike(
    forward: float, t: float, vol: float, price: float, theta: float, max_iterations: int = MAX_ITERATIONS
) -> ImpliedResult:
    """Strike of a call (``theta=1``) or put (``theta=-1``) with undiscounted value ``price``.

    Starts from the forward and iterates ``K <- K + theta f ln(f/V) / N(theta d-)``.
    """
    if not _valid_inputs(vol, t, price):
        return ImpliedResult.input_error()
    if theta > 0.0 and price >= forward:
        return ImpliedResult.input_error()

    sv = vol * math.sqrt(t)
    if sv < EPSILON:
        return _checked(forward - theta * price, True, "Black")

    k = forward
    for _ in range(max_iterations):
        d_plus = math.log(forward / k) / sv + 0.5 * sv
        d_minus = d_plus - sv
        f = theta * (forward * float(norm_cdf(theta * d_plus)) - k * float(norm_cdf(theta * d_minus)))
        if _close(f, price):
            return _checked(k, True, "Black")
        if not f > 0.0:
            break

        k += theta * f * math.log(f / price) / float(norm_cdf(theta * d_minus))
        if k < SUPER_TINY_EPSILON:
            k = forward - theta * price

    return _checked(k, False, "Black")


def black_straddle_implied_strike(
    forward: float,
    t: float,
    vol: float,
    price: float,
    max_iterations: int = MAX_ITERATIONS,
    initial_strike: float | None = None,
) -> ImpliedResult:
    """Strike above the straddle minimum with undiscounted straddle value ``price``.

    The straddle is smallest at ``K* = F exp(-sv^2 / 2)``, where ``d- = 0``. Without ``initial_strike`` the
    iteration starts from the quadratic expansion around ``K*``; a given start should lie at or above ``K*``.
    """
    if not _valid_inputs(vol, t, price):
        return ImpliedResult.input_error()

    sv = vol * math.sqrt(t)
    if sv < EPSILON:
        return _checked(forward + price, True, "Black straddle")

    def straddle(k: float) -> float:
        return float(black76_straddle_price(1.0, forward, k, t, vol))

    k_min = forward * math.exp(-0.5 * sv * sv)
    if price < straddle(k_min):
        return ImpliedResult.input_error()

    a = forward * sv * ONE_OVER_SQRT_TWO_PI
    k = initial_strike
    if k is None:
        k = k_min + math.sqrt(abs((price - 2.0 * a) * 2.0 * math.pi * a))

    for _ in range(max_iterations):
        d_minus = math.log(forward / k) / sv - 0.5 * sv
        f = straddle(k)
        if abs(d_minus) < EPSILON:
            if _close(f, price):
                return _checked(k, True, "Black straddle")
            k = k_min + abs(straddle_quartic_offset(price, a, lambda m: straddle(k_min + m)))
            continue
        if _close(f, price):
            return _checked(k, True, "Black straddle")

        k -= f * math.log(f / price) / (1.0 - 2.0 * float(norm_cdf(d_minus)))
        if k < SUPER_TINY_EPSILON:
            k = forward + price

    return _checked(k, False, "Black straddle")


def black_digital_implied_strike(forward: float, t: float, vol: float, price: float) -> ImpliedResult:
    """Strike of a digital call paying one unit, from ``N(d-) = V``."""
    if not _valid_inputs(vol, t, price) or price >= 1.0:
        return ImpliedResult.input_error()

    sv = vol * math.sqrt(t)
    q = float(norm_ppf(price))
    return _checked(forward * math.exp(-q * sv - 0.5 * sv * sv), True, "Black digital")


# ---------------------------------------------------------------------------------------------------------------------
# Bachelier
# ---------------------------------------------------------------------------------------------------------------------


def bachelier_implied_strike(
    forward: float, t: float, vol: float, price: float, theta: float, max_iterations: int = MAX_ITERATIONS
) -> ImpliedResult:
    """Strike of a call (``theta=1``) or put (``theta=-1``) under the normal model."""
    if not _valid_inputs(vol, t, price):
        return ImpliedResult.input_error()

    sv = vol * math.sqrt(t)
    if sv < EPSILON:
        return _checked(forward - theta * price, True, "Bachelier")

    a = sv * ONE_OVER_SQRT_TWO_PI
    k = forward - theta * 2.0 * (price - a)
    for _ in range(max_iterations):
        d = theta * (forward - k) / sv
        cdf = float(norm_cdf(d))
        f = theta * (forward - k) * cdf + sv * float(norm_pdf(d))
        if _close(f, price):
            return _checked(k, True, "Bachelier")
        if not (f > 0.0 and cdf > 0.0):
            break

        k += theta * f * math.log(f / price) / cdf
        if k < SUPER_TINY_EPSILON:
            k = forward - theta * price

    return _checked(k, False, "Bachelier")


def bachelier_straddle_implied_strike(
    forward: float,
    t: float,
    vol: float,
    price: float,
    max_iterations: int = MAX_ITERATIONS,
    initial_strike: float | None = None,
) -> ImpliedResult:
    """Strike at or above the forward with undiscounted normal straddle value ``price``.

    A given ``initial_strike`` should lie at or above the forward, where the straddle is smallest.
    """
    if not _valid_inputs(vol, t, price):
        return ImpliedResult.input_error()

    sv = vol * math.sqrt(t)
    if sv < EPSILON:
        return _checked(forward + price, True, "Bachelier straddle")

    a = sv * ONE_OVER_SQRT_TWO_PI
    if price < 2.0 * a:
        return ImpliedResult.input_error()

    def straddle(k: float) -> float:
        return float(bachelier_straddle_price(1.0, forward, k, t, vol))

    k = initial_strike
    if k is None:
        k = forward + math.sqrt(abs((price - 2.0 * a) * 2.0 * math.pi * a))
    for _ in range(max_iterations):
        d = (forward - k) / sv
        f = straddle(k)
        if abs(d) < EPSILON:
            if _close(f, price):
                return _checked(k, True, "Bachelier straddle")
            k = forward + abs(straddle_quartic_offset(price, a, lambda m: straddle(forward + m)))
            continue
        if _close(f, price):
            return _checked(k, True, "Bachelier straddle")

        k -= f * math.log(f / price) / (1.0 - 2.0 * float(norm_cdf(d)))
        if k < SUPER_TINY_EPSILON:
            k = forward + price

    return _checked(k, False, "Bachelier straddle")


def bachelier_digital_implied_strike(forward: float, t: float, vol: float, price: float) -> ImpliedResult:
    """Strike of a digital call paying one unit, from ``N((F - K) / sv) = V``."""
    if not _valid_inputs(vol, t, price) or price >= 1.0:
        return ImpliedResult.input_error()

    return _checked(forward - vol * math.sqrt(t) * float(norm_ppf(price)), True, "Bachelier digital")
