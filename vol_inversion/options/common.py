import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar

from vol_inversion.protocols import ImpliedResult, ImpliedVolApproach, OptionKind, OptionQuote, QuoteDomainError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EuropeanOption(ABC):
    """European option on a forward, priced with a discount factor to expiry.

    Prices passed to ``implied_volatility`` and ``implied_strike`` are discounted market prices.
    """

    strike: float
    forward: float
    time_to_expiry: float
    discount_factor: float = 1.0

    kind: ClassVar[OptionKind] = OptionKind.CALL

    def __post_init__(self) -> None:
        if not self.forward > 0.0:
            msg = f"Forward must be positive, got {self.forward}."
            raise ValueError(msg)
        if not self.strike > 0.0:
            msg = f"Strike must be positive, got {self.strike}."
            raise ValueError(msg)
        if not self.time_to_expiry >= 0.0:
            msg = f"Time to expiry must be non-negative, got {self.time_to_expiry}."
            raise ValueError(msg)
        if not (math.isfinite(self.discount_factor) and self.discount_factor > 0.0):
            msg = f"Discount factor must be positive, got {self.discount_factor}."
            raise ValueError(msg)

    def value(self, vol: float) -> float:
        return self.discount_factor * self.undiscounted_value(vol)

    def quote(self, price: float) -> OptionQuote:
        """Undiscounted quote for a discounted market price."""
        return OptionQuote(self.strike, self.forward, self.time_to_expiry, price / self.discount_factor)

    def implied_volatility(self, price: float) -> ImpliedResult:
        try:
            quote = self.quote(price)
        except QuoteDomainError as e:
            logger.debug("Rejected price %s: %s", price, e)
            return ImpliedResult.input_error()
        return self._implied_volatility(quote)

    def implied_strike(self, price: float, vol: float) -> ImpliedResult:
        """Strike at which the option with volatility ``vol`` is worth the discounted ``price``."""
        return self._implied_strike(price / self.discount_factor, vol)

    @abstractmethod
    def undiscounted_value(self, vol: float) -> float: ...

    @abstractmethod
    def _implied_volatility(self, quote: OptionQuote) -> ImpliedResult: ...

    @abstractmethod
    def _implied_strike(self, undiscounted_price: float, vol: float) -> ImpliedResult: ...


@dataclass(frozen=True)
class VanillaOption(EuropeanOption):
    """Option whose implied volatility is found by a configurable approach.

    Without an explicit ``approach`` the model default ``default_approach`` is used.
    """

    approach: ImpliedVolApproach | None = None

    default_approach: ClassVar[ImpliedVolApproach]

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.approach is None:
            object.__setattr__(self, "approach", self.default_approach)

    def _implied_volatility(self, quote: OptionQuote) -> ImpliedResult:
        return self.approach.implied_vol(quote, self.kind)
