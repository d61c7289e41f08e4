"""Options under the Bachelier (normal) model. Volatilities are absolute, in price units per square-root year."""

from dataclasses import dataclass
from typing import ClassVar

from vol_inversion.implied.bachelier import BachelierApproach, BachelierSor
from vol_inversion.implied.digital import bachelier_digital_implied_vol
from vol_inversion.implied.strike import (
    bachelier_digital_implied_strike,
    bachelier_implied_strike,
    bachelier_straddle_implied_strike,
)
from vol_inversion.models.bachelier import bachelier_digital_price, bachelier_price, bachelier_straddle_price
from vol_inversion.options.common import EuropeanOption, VanillaOption
from vol_inversion.protocols import ImpliedResult, OptionKind, OptionQuote

DEFAULT_BACHELIER_APPROACH: BachelierApproach = BachelierSor()


@dataclass(frozen=True)
class BachelierEuropeanCall(VanillaOption):
    default_approach: ClassVar[BachelierApproach] = DEFAULT_BACHELIER_APPROACH
    kind: ClassVar[OptionKind] = OptionKind.CALL

    def undiscounted_value(self, vol: float) -> float:
        return float(bachelier_price(1.0, self.forward, self.strike, self.time_to_expiry, vol, self.kind.theta > 0))

    def _implied_strike(self, undiscounted_price: float, vol: float) -> ImpliedResult:
        return bachelier_implied_strike(self.forward, self.time_to_expiry, vol, undiscounted_price, self.kind.theta)


@dataclass(frozen=True)
class BachelierEuropeanPut(BachelierEuropeanCall):
    kind: ClassVar[OptionKind] = OptionKind.PUT


@dataclass(frozen=True)
class BachelierEuropeanStraddle(VanillaOption):
    default_approach: ClassVar[BachelierApproach] = DEFAULT_BACHELIER_APPROACH
    kind: ClassVar[OptionKind] = OptionKind.STRADDLE

    def undiscounted_value(self, vol: float) -> float:
        return float(bachelier_straddle_price(1.0, self.forward, self.strike, self.time_to_expiry, vol))

    def _implied_strike(self, undiscounted_price: float, vol: float) -> ImpliedResult:
        return bachelier_straddle_implied_strike(self.forward, self.time_to_expiry, vol, undiscounted_price)


@dataclass(frozen=True)
class BachelierDigitalCall(EuropeanOption):
    def undiscounted_value(self, vol: float) -> float:
        return float(bachelier_digital_price(1.0, self.forward, self.strike, self.time_to_expiry, vol))

    def _implied_volatility(self, quote: OptionQuote) -> ImpliedResult:
        return bachelier_digital_implied_vol(quote)

    def _implied_strike(self, undiscounted_price: float, vol: float) -> ImpliedResult:
        return bachelier_digital_implied_strike(self.forward, self.time_to_expiry, vol, undiscounted_price)
