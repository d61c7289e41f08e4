"""Unit tests for the Black implied volatility approaches."""

import math
import unittest
from pathlib import Path

import numpy as np
import pandas as pd

from vol_inversion.implied.black import (
    Jaeckel,
    RationalApproximation,
    Sor,
    SorTs,
    sor_map,
    sor_ts_alpha,
    sor_ts_update,
)
from vol_inversion.models.black76 import black76_price, black76_straddle_price, implied_vol_simple, normalised_call
from vol_inversion.protocols import CanonicalProblem, ImpliedState, OptionKind, OptionQuote, SolverConfig
from vol_inversion.util import EPSILON

KINDS = {"C": OptionKind.CALL, "P": OptionKind.PUT}


class TestBlackApproaches(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        path = Path(__file__).resolve().parents[1] / "data" / "implied_cases.csv"
        cls.df = pd.read_csv(path)
        cls.approaches = {
            "sor": Sor(SolverConfig(500, EPSILON, 1.0)),
            "sor_ts": SorTs(),
            "jaeckel": Jaeckel(),
        }

    def _quote(self, row) -> OptionQuote:
        price = black76_price(1.0, row.F, row.K, row.tau, row.sigma, row.type == "C")
        return OptionQuote(row.K, row.F, row.tau, float(price))

    def test_round_trip(self) -> None:
        for name, approach in self.approaches.items():
            for row in self.df.itertuples(index=False):
                quote = self._quote(row)
                state, vol = approach.implied_vol(quote, KINDS[row.type])
                msg = f"{name}, row id={row.id}"
                self.assertIs(state, ImpliedState.PROPER_RESULT, msg=msg)

                repriced = black76_price(1.0, row.F, row.K, row.tau, vol, row.type == "C")
                tol = 1e-8 * max(row.F, row.K)
                self.assertLess(abs(repriced - quote.undiscounted_value), tol, msg=msg)
                np.testing.assert_allclose(vol, row.sigma, rtol=1e-6, err_msg=msg)

    def test_jaeckel_reaches_machine_precision(self) -> None:
        for row in self.df.itertuples(index=False):
            _, vol = Jaeckel().implied_vol(self._quote(row), KINDS[row.type])
            np.testing.assert_allclose(vol, row.sigma, rtol=1e-10, err_msg=f"row id={row.id}")

    def test_agrees_with_reference_inverter(self) -> None:
        for row in self.df.itertuples(index=False):
            quote = self._quote(row)
            reference = implied_vol_simple(1.0, row.F, row.K, row.tau, quote.undiscounted_value, row.type == "C")
            _, vol = SorTs().implied_vol(quote, KINDS[row.type])
            np.testing.assert_allclose(vol, reference, rtol=1e-7, err_msg=f"row id={row.id}")

    def test_straddle_round_trip(self) -> None:
        for k in (90.0, 100.0, 110.0):
            price = float(black76_straddle_price(1.0, 100.0, k, 1.0, 0.2))
            for approach in self.approaches.values():
                result = approach.implied_vol(OptionQuote(k, 100.0, 1.0, price), OptionKind.STRADDLE)
                self.assertTrue(result.is_proper)
                self.assertAlmostEqual(result.value, 0.2, places=7)

    def test_at_the_money_closed_form(self) -> None:
        price = float(black76_price(1.0, 100.0, 100.0, 1.0, 0.2, True))
        for approach in (*self.approaches.values(), RationalApproximation()):
            state, vol = approach.implied_vol(OptionQuote(100.0, 100.0, 1.0, price), OptionKind.CALL)
            self.assertIs(state, ImpliedState.PROPER_RESULT)
            self.assertAlmostEqual(vol, 0.2, delta=1e-6)

    def test_at_the_money_agrees_with_iteration(self) -> None:
        c0 = normalised_call(0.0, 0.25)
        for approach in self.approaches.values():
            closed = approach.solve(CanonicalProblem(0.0, c0, 1.0, 1.0))
            iterated = approach.solve(CanonicalProblem(-2.0 * EPSILON, c0, 1.0, 1.0))
            self.assertTrue(iterated.is_proper)
            self.assertAlmostEqual(closed.value, iterated.value, places=7)

    def test_boundary_rejection(self) -> None:
        for approach in (*self.approaches.values(), RationalApproximation()):
            # zero price for an in-the-money call
            result = approach.implied_vol(OptionQuote(90.0, 100.0, 1.0, 0.0), OptionKind.CALL)
            self.assertIs(result.state, ImpliedState.INPUT_ERROR)
            self.assertTrue(math.isnan(result.value))
            # undiscounted call above the forward
            result = approach.implied_vol(OptionQuote(90.0, 100.0, 1.0, 100.5), OptionKind.CALL)
            self.assertIs(result.state, ImpliedState.INPUT_ERROR)
            result = approach.implied_vol(OptionQuote(90.0, 100.0, 0.0, 12.0), OptionKind.CALL)
            self.assertIs(result.state, ImpliedState.INPUT_ERROR)

    def test_intrinsic_value_has_zero_vol(self) -> None:
        for approach in self.approaches.values():
            result = approach.implied_vol(OptionQuote(90.0, 100.0, 1.0, 10.0), OptionKind.CALL)
            self.assertEqual(tuple(result), (ImpliedState.PROPER_RESULT, 0.0))

    def test_monotonicity(self) -> None:
        sigmas = np.array([0.1, 0.15, 0.2, 0.3, 0.5])
        prices = black76_price(1.0, 100.0, 115.0, 1.0, sigmas, True)
        self.assertTrue(np.all(np.diff(prices) > 0.0))

        vols = [Jaeckel().implied_vol(OptionQuote(115.0, 100.0, 1.0, float(p)), OptionKind.CALL).value for p in prices]
        self.assertTrue(np.all(np.diff(vols) > 0.0))

    def test_plain_sor_budget_exhausted(self) -> None:
        # slow linear convergence away from the money: the default ten steps are not enough
        price = float(black76_price(1.0, 100.0, 110.0, 1.0, 0.2, True))
        result = Sor().implied_vol(OptionQuote(110.0, 100.0, 1.0, price), OptionKind.CALL)
        self.assertIs(result.state, ImpliedState.NO_PROPER_RESULT)
        self.assertAlmostEqual(result.value, 0.2, delta=0.02)

    def test_rational_approximation(self) -> None:
        price = float(black76_price(1.0, 100.0, 105.0, 1.0, 0.2, True))
        result = RationalApproximation().implied_vol(OptionQuote(105.0, 100.0, 1.0, price), OptionKind.CALL)
        self.assertIs(result.state, ImpliedState.PROPER_RESULT)
        self.assertAlmostEqual(result.value, 0.2, delta=1e-3)

        price = float(black76_price(1.0, 100.0, 200.0, 1.0, 0.2, True))
        result = RationalApproximation().implied_vol(OptionQuote(200.0, 100.0, 1.0, price), OptionKind.CALL)
        self.assertIs(result.state, ImpliedState.NO_PROPER_RESULT)


class TestSorMaps(unittest.TestCase):
    def test_fixed_point(self) -> None:
        x, v = -0.0953, 0.2
        c0 = normalised_call(x, v)
        for w in (0.0, 0.5, 1.0):
            self.assertAlmostEqual(sor_map(x, c0, v, w), v, places=12)
            self.assertAlmostEqual(sor_ts_update(x, c0, v, w), v, places=12)

    def test_sor_ts_uses_alpha_of_previous_iterate(self) -> None:
        # alpha is evaluated at the iterate the step starts from, not at the mixed value
        x, w = -0.0953, 1.0
        c0 = normalised_call(x, 0.2)
        v = 0.23
        g = sor_map(x, c0, v, w)
        lagged = sor_ts_alpha(x, v, w) * g + (1.0 - sor_ts_alpha(x, v, w)) * v
        self.assertEqual(sor_ts_update(x, c0, v, w), lagged)

        mixed_alpha = sor_ts_alpha(x, lagged, w)
        self.assertNotAlmostEqual(mixed_alpha * g + (1.0 - mixed_alpha) * v, lagged, places=6)

    def test_sor_ts_alpha_at_unit_relaxation(self) -> None:
        x, v = -0.1, 0.3
        self.assertAlmostEqual(sor_ts_alpha(x, v, 1.0), (v * v + 0.2) / (v * v), places=12)


if __name__ == "__main__":
    unittest.main()
