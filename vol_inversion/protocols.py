"""Protocols and data structures shared by the implied volatility and implied strike solvers."""

import enum
import math
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

# ---------------------------------------------------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------------------------------------------------


class ImpliedState(enum.Enum):
    """Outcome of an implied volatility or implied strike calculation."""

    PROPER_RESULT = "proper_result"
    NO_PROPER_RESULT = "no_proper_result"
    INPUT_ERROR = "input_error"


class OptionKind(enum.Enum):
    CALL = "C"
    PUT = "P"
    STRADDLE = "S"

    @property
    def theta(self) -> float:
        """+1 for call-like, -1 for put-like payoffs. Straddles are treated as calls."""
        return -1.0 if self is OptionKind.PUT else 1.0


# ---------------------------------------------------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------------------------------------------------


class QuoteDomainError(ValueError):
    """Raised when a quote lies outside the domain where an inversion is defined."""


@dataclass(frozen=True, slots=True)
class ImpliedResult:
    """Status and value of a single inversion.

    The value is the last iterate for ``NO_PROPER_RESULT`` and NaN for ``INPUT_ERROR``. Unpacks as
    ``state, value = result``.
    """

    state: ImpliedState
    value: float = math.nan

    def __iter__(self) -> Iterator:
        return iter((self.state, self.value))

    @property
    def is_proper(self) -> bool:
        return self.state is ImpliedState.PROPER_RESULT

    @classmethod
    def proper(cls, value: float) -> "ImpliedResult":
        return cls(ImpliedState.PROPER_RESULT, float(value))

    @classmethod
    def no_proper(cls, value: float = math.nan) -> "ImpliedResult":
        return cls(ImpliedState.NO_PROPER_RESULT, float(value))

    @classmethod
    def input_error(cls) -> "ImpliedResult":
        return cls(ImpliedState.INPUT_ERROR, math.nan)

    def scaled(self, factor: float) -> "ImpliedResult":
        """Multiply the carried value by ``factor``.

        A proper result with a non-finite value becomes an input error. A result without a proper value keeps its
        state and carries the scaled last iterate, NaN included.
        """
        if self.state is ImpliedState.INPUT_ERROR:
            return self
        value = self.value * factor
        if self.state is ImpliedState.PROPER_RESULT and not math.isfinite(value):
            return ImpliedResult.input_error()
        return ImpliedResult(self.state, value)


@dataclass(frozen=True, slots=True)
class OptionQuote:
    """Undiscounted option price together with its contract terms."""

    strike: float
    forward: float
    time_to_expiry: float
    undiscounted_value: float

    def __post_init__(self) -> None:
        values = (self.strike, self.forward, self.time_to_expiry, self.undiscounted_value)
        if not all(math.isfinite(v) for v in values):
            msg = f"Quote fields must be finite, got {values}."
            raise QuoteDomainError(msg)
        if self.strike <= 0.0 or self.forward <= 0.0:
            msg = f"Strike and forward must be positive, got K={self.strike}, F={self.forward}."
            raise QuoteDomainError(msg)
        if self.time_to_expiry < 0.0:
            msg = f"Time to expiry must be non-negative, got {self.time_to_expiry}."
            raise QuoteDomainError(msg)


@dataclass(frozen=True, slots=True)
class CanonicalProblem:
    """Normalised, out-of-the-money call inversion problem.

    For the Black model ``moneyness`` is ``-|ln(F/K)|`` and ``price`` is the dimensionless call price. For the
    Bachelier model ``moneyness`` is ``-|F - K|`` and ``price`` is the call price in price units. ``sign`` records
    whether the quoted instrument was call-like (+1) or put-like (-1).
    """

    moneyness: float
    price: float
    sign: float
    time_to_expiry: float


@dataclass(frozen=True, slots=True)
class SolverConfig:
    """Iteration budget, tolerance and relaxation parameter of an iterative engine."""

    max_iterations: int
    tolerance: float
    relaxation: float = 1.0

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            msg = f"max_iterations must be at least 1, got {self.max_iterations}."
            raise ValueError(msg)
        if not self.tolerance > 0.0:
            msg = f"tolerance must be positive, got {self.tolerance}."
            raise ValueError(msg)
        if not self.relaxation >= 0.0:
            msg = f"relaxation must be non-negative, got {self.relaxation}."
            raise ValueError(msg)


# ---------------------------------------------------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------------------------------------------------


@runtime_checkable
class ImpliedVolApproach(Protocol):
    """Inverts a pricing formula for the volatility.

    ``solve`` works on the canonical problem and returns total volatility. ``implied_vol`` normalises a quote of the
    given kind, solves it, and returns the annualised volatility.
    """

    def solve(self, problem: CanonicalProblem) -> ImpliedResult: ...

    def implied_vol(self, quote: OptionQuote, kind: OptionKind) -> ImpliedResult: ...
