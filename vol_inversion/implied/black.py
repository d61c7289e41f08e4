"""Implied Black volatility approaches.

Every approach works on the canonical out-of-the-money call problem produced by
:func:`vol_inversion.implied.normalizer.normalize_black` and iterates in total volatility ``v = sigma sqrt(T)``.
The annualisation happens once, in :meth:`BlackApproach.implied_vol`.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from vol_inversion.implied.guess import atm_total_vol, jaeckel_guess, li_rational_approximation, rational_regression_guess
from vol_inversion.implied.normalizer import normalize_black
from vol_inversion.models.black76 import normalised_call_jaeckel, normalised_vega_jaeckel
from vol_inversion.protocols import (
    CanonicalProblem,
    ImpliedResult,
    ImpliedState,
    OptionKind,
    OptionQuote,
    QuoteDomainError,
    SolverConfig,
)
from vol_inversion.util import EPSILON, TINY_EPSILON, norm_cdf, norm_ppf

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlackApproach(ABC):
    """Base class of the Black implied volatility approaches."""

    def implied_vol(self, quote: OptionQuote, kind: OptionKind) -> ImpliedResult:
        """Annualised implied volatility of an undiscounted call, put or straddle quote."""
        try:
            problem = normalize_black(quote, kind)
        except QuoteDomainError as e:
            logger.debug("Rejected quote: %s", e)
            return ImpliedResult.input_error()

        return self.solve(problem).scaled(1.0 / math.sqrt(problem.time_to_expiry))

    def solve(self, problem: CanonicalProblem) -> ImpliedResult:
        """Total implied volatility of a canonical problem."""
        x, c0 = problem.moneyness, problem.price
        if c0 <= 0.0:
            return ImpliedResult.proper(0.0)
        if abs(x) < EPSILON:
            return ImpliedResult.proper(atm_total_vol(c0 * math.exp(0.5 * x)))

        result = self._solve(x, c0)
        if result.state is ImpliedState.NO_PROPER_RESULT:
            msg = f"{type(self).__name__} did not converge for x={x}, c0={c0}; last iterate {result.value}."
            logger.warning(msg)
        return result

    @abstractmethod
    def _solve(self, x: float, c0: float) -> ImpliedResult: ...


# ---------------------------------------------------------------------------------------------------------------------
# Successive over-relaxation
# ---------------------------------------------------------------------------------------------------------------------


def _call_legs(x: float, v: float) -> tuple[float, float]:
    """``N(x/v + v/2)`` and ``exp(-x) N(x/v - v/2)``; their difference is the normalised call."""
    n_plus = float(norm_cdf(x / v + 0.5 * v))
    n_minus = math.exp(-x) * float(norm_cdf(x / v - 0.5 * v))
    return n_plus, n_minus


def sor_map(x: float, c0: float, v: float, w: float) -> float:
    """Fixed-point map ``G(v)`` whose fixed point is the implied total volatility.

    With ``t = N^-1((c0 + n- + w n+) / (1 + w))`` the map returns the positive root ``t + sqrt(t^2 + 2|x|)``.
    """
    n_plus, n_minus = _call_legs(x, v)
    t = float(norm_ppf((c0 + n_minus + w * n_plus) / (1.0 + w)))
    return t + math.sqrt(t * t + 2.0 * abs(x))


def sor_ts_alpha(x: float, v: float, w: float) -> float:
    v2 = v * v
    return (1.0 + w) / (1.0 + (v2 - 2.0 * abs(x)) / (v2 + 2.0 * abs(x)))


def sor_ts_update(x: float, c0: float, v: float, w: float) -> float:
    """One SOR-TS step.

    The mixing coefficient is taken from the iterate ``v`` the step starts from, not from the mixed result.
    """
    alpha = sor_ts_alpha(x, v, w)
    return alpha * sor_map(x, c0, v, w) + (1.0 - alpha) * v


@dataclass(frozen=True)
class Sor(BlackApproach):
    """Plain successive over-relaxation, seeded by the rational regression guess.

    Convergence is tested on the price residual.
    """

    config: SolverConfig = field(default_factory=lambda: SolverConfig(10, EPSILON, 1.0))

    def _step(self, x: float, c0: float, v: float) -> float:
        return sor_map(x, c0, v, self.config.relaxation)

    def _solve(self, x: float, c0: float) -> ImpliedResult:
        v = rational_regression_guess(x, c0)
        for _ in range(self.config.max_iterations):
            if not v > 0.0:
                break
            n_plus, n_minus = _call_legs(x, v)
            if abs(n_plus - n_minus - c0) < self.config.tolerance:
                return ImpliedResult.proper(v)
            v = self._step(x, c0, v)

        return ImpliedResult.no_proper(v)


@dataclass(frozen=True)
class SorTs(Sor):
    """Successive over-relaxation with an adaptive relaxation (sequence transformation)."""

    config: SolverConfig = field(default_factory=lambda: SolverConfig(7, EPSILON, 1.0))

    def _step(self, x: float, c0: float, v: float) -> float:
        return sor_ts_update(x, c0, v, self.config.relaxation)


# ---------------------------------------------------------------------------------------------------------------------
# Jaeckel
# ---------------------------------------------------------------------------------------------------------------------


@dataclass(frozen=True)
class Jaeckel(BlackApproach):
    """Safeguarded Halley iteration started from a bracketing guess.

    Below the reference price ``bc`` the residual is taken on a logarithmic scale. The Newton step is floored at
    ``-v/2`` and the curvature correction at ``-0.75``. Convergence is tested on the relative change of ``v``.

    References:
        Jaeckel (2015) "Let's be rational", Wilmott, 2015(75), 40-53.
    """

    config: SolverConfig = field(default_factory=lambda: SolverConfig(10, TINY_EPSILON))

    def _solve(self, x: float, c0: float) -> ImpliedResult:
        beta = c0 * math.exp(0.5 * x)
        sigma, bc = jaeckel_guess(x, beta)
        below_bc = beta < bc
        log_beta = math.log(beta)

        for _ in range(self.config.max_iterations):
            b = normalised_call_jaeckel(x, sigma)
            b_prime = normalised_vega_jaeckel(x, sigma)
            if not (b > 0.0 and b_prime > 0.0):
                return ImpliedResult.no_proper(sigma)

            if below_bc:
                log_b = math.log(b)
                nu = math.log(beta / b) * log_b / log_beta * b / b_prime
            else:
                nu = (beta - b) / b_prime
            nu_hat = max(nu, -0.5 * sigma)

            eta = x * x / sigma**3 - 0.25 * sigma
            if below_bc:
                eta -= (2.0 + log_b) / log_b * b_prime / b
            eta_hat = max(-0.75, 0.5 * eta * nu_hat)

            sigma_new = sigma + max(nu_hat / (1.0 + eta_hat), -0.5 * sigma)
            change = abs(sigma_new / sigma - 1.0)
            sigma = sigma_new

            if math.isnan(change):
                return ImpliedResult.no_proper(sigma)
            if change < self.config.tolerance:
                return ImpliedResult.proper(sigma)

        return ImpliedResult.no_proper(sigma)


# ---------------------------------------------------------------------------------------------------------------------
# Rational approximation
# ---------------------------------------------------------------------------------------------------------------------


@dataclass(frozen=True)
class RationalApproximation(BlackApproach):
    """Li's rational approximation returned without refinement."""

    def _solve(self, x: float, c0: float) -> ImpliedResult:
        return li_rational_approximation(x, c0)
