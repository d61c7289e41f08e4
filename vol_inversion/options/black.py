"""Options under the Black (lognormal) model."""

from dataclasses import dataclass
from typing import ClassVar

from vol_inversion.implied.black import BlackApproach, Jaeckel
from vol_inversion.implied.digital import black_digital_implied_vol
from vol_inversion.implied.strike import black_digital_implied_strike, black_implied_strike, black_straddle_implied_strike
from vol_inversion.models.black76 import black76_digital_price, black76_price, black76_straddle_price
from vol_inversion.options.common import EuropeanOption, VanillaOption
from vol_inversion.protocols import ImpliedResult, OptionKind, OptionQuote

DEFAULT_BLACK_APPROACH: BlackApproach = Jaeckel()


@dataclass(frozen=True)
class BlackEuropeanCall(VanillaOption):
    default_approach: ClassVar[BlackApproach] = DEFAULT_BLACK_APPROACH
    kind: ClassVar[OptionKind] = OptionKind.CALL

    def undiscounted_value(self, vol: float) -> float:
        return float(black76_price(1.0, self.forward, self.strike, self.time_to_expiry, vol, self.kind.theta > 0))

    def _implied_strike(self, undiscounted_price: float, vol: float) -> ImpliedResult:
        return black_implied_strike(self.forward, self.time_to_expiry, vol, undiscounted_price, self.kind.theta)


@dataclass(frozen=True)
class BlackEuropeanPut(BlackEuropeanCall):
    kind: ClassVar[OptionKind] = OptionKind.PUT


@dataclass(frozen=True)
class BlackEuropeanStraddle(VanillaOption):
    default_approach: ClassVar[BlackApproach] = DEFAULT_BLACK_APPROACH
    kind: ClassVar[OptionKind] = OptionKind.STRADDLE

    def undiscounted_value(self, vol: float) -> float:
        return float(black76_straddle_price(1.0, self.forward, self.strike, self.time_to_expiry, vol))

    def _implied_strike(self, undiscounted_price: float, vol: float) -> ImpliedResult:
        return black_straddle_implied_strike(self.forward, self.time_to_expiry, vol, undiscounted_price)


@dataclass(frozen=True)
class BlackDigitalCall(EuropeanOption):
    """Cash-or-nothing call paying one unit; implied volatility and strike are closed form."""

    def undiscounted_value(self, vol: float) -> float:
        return float(black76_digital_price(1.0, self.forward, self.strike, self.time_to_expiry, vol))

    def _implied_volatility(self, quote: OptionQuote) -> ImpliedResult:
        return black_digital_implied_vol(quote)

    def _implied_strike(self, undiscounted_price: float, vol: float) -> ImpliedResult:
        return black_digital_implied_strike(self.forward, self.time_to_expiry, vol, undiscounted_price)
