"""Closed-form implied volatility of digital calls paying one unit at expiry."""

import math

from vol_inversion.protocols import ImpliedResult, OptionQuote
from vol_inversion.util import norm_ppf


def _valid(quote: OptionQuote) -> bool:
    return quote.time_to_expiry > 0.0 and 0.0 < quote.undiscounted_value < 1.0


def black_digital_implied_vol(quote: OptionQuote) -> ImpliedResult:
    """Solve ``N(x/v - v/2) = V`` for the total volatility ``v``.

    The equation is the quadratic ``v^2 + 2 q v - 2 x = 0`` with ``q = N^-1(V)``. When both roots are positive
    (out-of-the-money digital below its maximum value) the smaller one is taken.
    """
    if not _valid(quote):
        return ImpliedResult.input_error()

    x = math.log(quote.forward / quote.strike)
    q = float(norm_ppf(quote.undiscounted_value))
    discriminant = q * q + 2.0 * x
    if discriminant < 0.0:
        return ImpliedResult.input_error()

    v = -q - math.sqrt(discriminant)
    if not v > 0.0:
        v = -q + math.sqrt(discriminant)
    if not v > 0.0:
        return ImpliedResult.input_error()

    return ImpliedResult.proper(v).scaled(1.0 / math.sqrt(quote.time_to_expiry))


def bachelier_digital_implied_vol(quote: OptionQuote) -> ImpliedResult:
    """``sigma = (F - K) / (sqrt(T) N^-1(V))``."""
    if not _valid(quote):
        return ImpliedResult.input_error()

    q = float(norm_ppf(quote.undiscounted_value))
    if q == 0.0:
        return ImpliedResult.input_error()

    sigma = (quote.forward - quote.strike) / (math.sqrt(quote.time_to_expiry) * q)
    if not sigma > 0.0:
        return ImpliedResult.input_error()
    return ImpliedResult.proper(sigma)
