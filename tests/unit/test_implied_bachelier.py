"""Unit tests for the Bachelier implied volatility approaches."""

import unittest

import numpy as np

from vol_inversion.implied.bachelier import BachelierApproach, BachelierRationalApproximation, BachelierSor
from vol_inversion.models.bachelier import bachelier_price, bachelier_straddle_price
from vol_inversion.protocols import CanonicalProblem, ImpliedResult, ImpliedState, OptionKind, OptionQuote, SolverConfig
from vol_inversion.util import EPSILON


class TestBachelierApproaches(unittest.TestCase):
    def setUp(self) -> None:
        self.forward = 100.0
        self.strikes = [80.0, 95.0, 100.0, 104.0, 120.0]
        self.t = 1.5
        self.sigma = 18.0

    def _quote(self, k: float, kind: OptionKind) -> OptionQuote:
        if kind is OptionKind.STRADDLE:
            value = bachelier_straddle_price(1.0, self.forward, k, self.t, self.sigma)
        else:
            value = bachelier_price(1.0, self.forward, k, self.t, self.sigma, kind is OptionKind.CALL)
        return OptionQuote(k, self.forward, self.t, float(value))

    def test_sor_round_trip(self) -> None:
        for kind in OptionKind:
            for k in self.strikes:
                quote = self._quote(k, kind)
                state, vol = BachelierSor().implied_vol(quote, kind)
                self.assertIs(state, ImpliedState.PROPER_RESULT, msg=f"{kind}, K={k}")
                self.assertAlmostEqual(vol, self.sigma, delta=1e-8, msg=f"{kind}, K={k}")

    def test_sor_with_relaxation(self) -> None:
        approach = BachelierSor(SolverConfig(200, EPSILON, 1.0))
        for k in self.strikes:
            state, vol = approach.implied_vol(self._quote(k, OptionKind.PUT), OptionKind.PUT)
            self.assertIs(state, ImpliedState.PROPER_RESULT)
            self.assertAlmostEqual(vol, self.sigma, delta=1e-7)

    def test_rational_approximation(self) -> None:
        for k in self.strikes:
            state, vol = BachelierRationalApproximation().implied_vol(self._quote(k, OptionKind.CALL), OptionKind.CALL)
            self.assertIs(state, ImpliedState.PROPER_RESULT)
            np.testing.assert_allclose(vol, self.sigma, rtol=1e-5)

    def test_at_the_money_closed_form(self) -> None:
        problem = CanonicalProblem(0.0, 10.0, 1.0, 1.0)
        result = BachelierSor().solve(problem)
        self.assertAlmostEqual(result.value, 10.0 * np.sqrt(2.0 * np.pi), places=12)

    def test_input_errors(self) -> None:
        for approach in (BachelierSor(), BachelierRationalApproximation()):
            result = approach.implied_vol(OptionQuote(90.0, 100.0, 1.0, 5.0), OptionKind.CALL)
            self.assertIs(result.state, ImpliedState.INPUT_ERROR)
            result = approach.implied_vol(OptionQuote(90.0, 100.0, 0.0, 15.0), OptionKind.CALL)
            self.assertIs(result.state, ImpliedState.INPUT_ERROR)

    def test_put_parity(self) -> None:
        # a put quoted through parity gives the same volatility as the direct call
        k = 95.0
        call = self._quote(k, OptionKind.CALL)
        put = self._quote(k, OptionKind.PUT)
        self.assertAlmostEqual(
            put.undiscounted_value, call.undiscounted_value - (self.forward - k), places=12
        )
        _, vol_call = BachelierSor().implied_vol(call, OptionKind.CALL)
        _, vol_put = BachelierSor().implied_vol(put, OptionKind.PUT)
        self.assertAlmostEqual(vol_call, vol_put, places=9)


class _OutsideFittedRange(BachelierApproach):
    def _solve(self, x: float, c0: float) -> ImpliedResult:
        return ImpliedResult.no_proper()


class TestNoProperResult(unittest.TestCase):
    def test_state_survives_annualisation(self) -> None:
        quote = OptionQuote(110.0, 100.0, 4.0, float(bachelier_price(1.0, 100.0, 110.0, 4.0, 18.0, True)))
        result = _OutsideFittedRange().implied_vol(quote, OptionKind.CALL)
        self.assertIs(result.state, ImpliedState.NO_PROPER_RESULT)
        self.assertTrue(np.isnan(result.value))

    def test_last_iterate_is_annualised(self) -> None:
        quote = OptionQuote(140.0, 100.0, 4.0, float(bachelier_price(1.0, 100.0, 140.0, 4.0, 18.0, True)))
        state, vol = BachelierSor(SolverConfig(1, 1e-300, 0.0)).implied_vol(quote, OptionKind.CALL)
        self.assertIs(state, ImpliedState.NO_PROPER_RESULT)
        self.assertAlmostEqual(vol, 18.0, delta=0.5)


if __name__ == "__main__":
    unittest.main()
