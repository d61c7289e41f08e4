"""Implied normal (Bachelier) volatility approaches.

The canonical problem is an out-of-the-money call in price units with ``x = F - K <= 0``.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from vol_inversion.implied.guess import choi_kim_kwak
from vol_inversion.implied.normalizer import normalize_bachelier
from vol_inversion.protocols import (
    CanonicalProblem,
    ImpliedResult,
    ImpliedState,
    OptionKind,
    OptionQuote,
    QuoteDomainError,
    SolverConfig,
)
from vol_inversion.util import EPSILON, SQRT_TWO_PI, norm_cdf, norm_pdf

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BachelierApproach(ABC):
    """Base class of the Bachelier implied volatility approaches."""

    def implied_vol(self, quote: OptionQuote, kind: OptionKind) -> ImpliedResult:
        try:
            problem = normalize_bachelier(quote, kind)
        except QuoteDomainError as e:
            logger.debug("Rejected quote: %s", e)
            return ImpliedResult.input_error()

        return self.solve(problem).scaled(1.0 / math.sqrt(problem.time_to_expiry))

    def solve(self, problem: CanonicalProblem) -> ImpliedResult:
        x, c0 = problem.moneyness, problem.price
        if c0 <= 0.0:
            return ImpliedResult.proper(0.0)
        if abs(x) < EPSILON:
            return ImpliedResult.proper(SQRT_TWO_PI * c0)

        result = self._solve(x, c0)
        if result.state is ImpliedState.NO_PROPER_RESULT:
            msg = f"{type(self).__name__} did not converge for x={x}, c0={c0}; last iterate {result.value}."
            logger.warning(msg)
        return result

    @abstractmethod
    def _solve(self, x: float, c0: float) -> ImpliedResult: ...


@dataclass(frozen=True)
class BachelierSor(BachelierApproach):
    """Successive over-relaxation on ``c0 = v n(x/v) + x N(x/v)``.

    The default relaxation of zero gives the plain fixed-point map ``v = (c0 - x N) / n``.
    """

    config: SolverConfig = field(default_factory=lambda: SolverConfig(10, EPSILON, 0.0))

    def _solve(self, x: float, c0: float) -> ImpliedResult:
        w = self.config.relaxation
        guess = choi_kim_kwak(x, c0)
        v = guess.value if guess.is_proper else SQRT_TWO_PI * c0

        for _ in range(self.config.max_iterations):
            if not v > 0.0:
                break
            d = x / v
            n = float(norm_pdf(d))
            if n == 0.0:
                break
            cdf = float(norm_cdf(d))
            if abs(v * n + x * cdf - c0) < self.config.tolerance:
                return ImpliedResult.proper(v)
            v = (c0 - x * cdf + w * v * n) / ((1.0 + w) * n)

        return ImpliedResult.no_proper(v)


@dataclass(frozen=True)
class BachelierRationalApproximation(BachelierApproach):
    """Choi, Kim and Kwak's straddle approximation returned without refinement."""

    def _solve(self, x: float, c0: float) -> ImpliedResult:
        return choi_kim_kwak(x, c0)
