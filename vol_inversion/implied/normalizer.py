"""Reduction of call, put and straddle quotes to a canonical out-of-the-money call problem.

All instruments are mapped to the undiscounted call value through put-call parity. If the call is in the money,
the problem is mirrored onto the out-of-the-money put (in-out duality) so that the engines never subtract two nearly
equal numbers.
"""

import math

from vol_inversion.protocols import CanonicalProblem, OptionKind, OptionQuote, QuoteDomainError


def _check_time(quote: OptionQuote) -> None:
    if quote.time_to_expiry <= 0.0:
        msg = f"Implied volatility is undefined for time to expiry {quote.time_to_expiry}."
        raise QuoteDomainError(msg)


def call_equivalent(quote: OptionQuote, kind: OptionKind) -> float:
    """Undiscounted call value implied by a call, put or straddle quote."""
    v, k, f = quote.undiscounted_value, quote.strike, quote.forward
    if kind is OptionKind.CALL:
        return v
    if kind is OptionKind.PUT:
        return v + f - k
    return 0.5 * (v + f - k)


def normalize_black(quote: OptionQuote, kind: OptionKind) -> CanonicalProblem:
    """Dimensionless canonical problem for the Black model.

    Raises:
        QuoteDomainError: if the price violates ``max(0, 1 - K/F) <= c0 <= 1``.
    """
    _check_time(quote)
    k, f = quote.strike, quote.forward
    call = call_equivalent(quote, kind)

    c0 = call / f
    lower = max(0.0, 1.0 - k / f)
    if not lower <= c0 <= 1.0:
        msg = f"Price {quote.undiscounted_value} of {kind.name} (K={k}, F={f}) violates the arbitrage bounds."
        raise QuoteDomainError(msg)

    x = math.log(f / k)
    if x > 0.0:
        # out-of-the-money put on the mirrored forward, quoted directly to avoid cancellation
        otm = quote.undiscounted_value if kind is OptionKind.PUT else call - (f - k)
        return CanonicalProblem(moneyness=-x, price=max(otm / k, 0.0), sign=kind.theta,
                                time_to_expiry=quote.time_to_expiry)

    return CanonicalProblem(moneyness=x, price=c0, sign=kind.theta, time_to_expiry=quote.time_to_expiry)


def normalize_bachelier(quote: OptionQuote, kind: OptionKind) -> CanonicalProblem:
    """Canonical problem for the Bachelier model, in price units with ``x = F - K``.

    Raises:
        QuoteDomainError: if the call-equivalent price is below intrinsic value.
    """
    _check_time(quote)
    x = quote.forward - quote.strike
    call = call_equivalent(quote, kind)

    if call < max(x, 0.0):
        msg = f"Price {quote.undiscounted_value} of {kind.name} is below intrinsic value {max(x, 0.0)}."
        raise QuoteDomainError(msg)

    if x > 0.0:
        otm = quote.undiscounted_value if kind is OptionKind.PUT else call - x
        return CanonicalProblem(moneyness=-x, price=max(otm, 0.0), sign=kind.theta,
                                time_to_expiry=quote.time_to_expiry)

    return CanonicalProblem(moneyness=x, price=call, sign=kind.theta, time_to_expiry=quote.time_to_expiry)
