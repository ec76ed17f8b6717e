"""
Curve Fitting Tests
===================
Tests for the linear solver and the polynomial/exponential/linear fits.

Run with: python -m pytest tests/test_curve_fitting.py -v
Or:       python tests/test_curve_fitting.py
"""

import sys
import numpy as np
import pytest
from pathlib import Path

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from labor_core.errors import SingularMatrixError
from labor_core.linear_algebra import solve_linear_system
from labor_core.curve_fitting import (
    FitKind,
    FittedCurve,
    recency_weights,
    weighted_rmse,
    fit_polynomial,
    fit_exponential,
    fit_best,
    fit_linear,
    degenerate_curve,
)


class TestSolveLinearSystem:
    """Tests for Gaussian elimination with partial pivoting."""

    def test_solves_3x3_system(self):
        A = [[2, 1, -1], [-3, -1, 2], [-2, 1, 2]]
        B = [8, -11, -3]

        x = solve_linear_system(A, B)

        np.testing.assert_allclose(x, [2.0, 3.0, -1.0], atol=1e-12)
        print("[PASS] 3x3 system solved")

    def test_zero_leading_pivot_needs_swap(self):
        x = solve_linear_system([[0, 1], [1, 0]], [2, 3])

        np.testing.assert_allclose(x, [3.0, 2.0])
        print("[PASS] Row swap on zero pivot")

    def test_singular_matrix_raises(self):
        with pytest.raises(SingularMatrixError) as exc_info:
            solve_linear_system([[1, 2], [2, 4]], [3, 6])

        assert exc_info.value.column == 1
        print("[PASS] Singular matrix detected")

    def test_inputs_not_mutated(self):
        A = [[0.0, 1.0], [1.0, 0.0]]
        B = [2.0, 3.0]

        solve_linear_system(A, B)

        assert A == [[0.0, 1.0], [1.0, 0.0]]
        assert B == [2.0, 3.0]
        print("[PASS] Inputs left untouched")

    def test_shape_mismatch_raises_value_error(self):
        with pytest.raises(ValueError):
            solve_linear_system([[1, 2, 3], [4, 5, 6]], [1, 2])
        with pytest.raises(ValueError):
            solve_linear_system([[1, 0], [0, 1]], [1, 2, 3])
        print("[PASS] Shape mismatches rejected")


class TestRecencyWeights:
    """Tests for the 1 -> 10 weight ramp."""

    def test_weighted_ramp(self):
        np.testing.assert_allclose(recency_weights(4, True), [1.0, 4.0, 7.0, 10.0])

    def test_unweighted_is_ones(self):
        np.testing.assert_allclose(recency_weights(3, False), [1.0, 1.0, 1.0])

    def test_single_point(self):
        np.testing.assert_allclose(recency_weights(1, True), [1.0])


class TestPolynomialFit:
    """Tests for the weighted quadratic fit."""

    def test_three_points_reproduced_exactly(self):
        x = np.array([1_700_000_000.0, 1_700_000_300.0, 1_700_000_600.0])
        y = np.array([10.0, 25.0, 16.0])

        for weighted in (False, True):
            curve = fit_polynomial(x, y, weighted=weighted)
            assert curve.kind == FitKind.POLYNOMIAL
            np.testing.assert_allclose(curve.predict(x), y, atol=1e-8)

        print("[PASS] Quadratic through 3 points")

    def test_recovers_quadratic_coefficients(self):
        x = np.linspace(0, 10, 11)
        y = 2 + 3 * x + 0.5 * x ** 2

        curve = fit_polynomial(x, y)

        np.testing.assert_allclose(curve.predict(12.0), 2 + 36 + 72, rtol=1e-9)
        assert curve.x_min == 0.0
        assert curve.x_range == 10.0

    def test_fewer_than_three_points_degenerate(self):
        curve = fit_polynomial([1.0, 2.0], [5.0, 6.0])

        assert curve.is_degenerate
        assert curve.predict(1.5) == 0.0
        print("[PASS] Degenerate fit for 2 points")

    def test_identical_x_values_degenerate(self):
        curve = fit_polynomial([5.0, 5.0, 5.0], [1.0, 2.0, 3.0])

        assert curve.kind == FitKind.NONE

    def test_scalar_and_array_predict(self):
        curve = fit_polynomial([0.0, 1.0, 2.0], [1.0, 2.0, 5.0])

        assert isinstance(curve.predict(1.0), float)
        assert isinstance(curve.predict(np.array([0.0, 1.0])), np.ndarray)

    def test_mismatched_lengths_raise(self):
        with pytest.raises(ValueError):
            fit_polynomial([1.0, 2.0, 3.0], [1.0, 2.0])


class TestExponentialFit:
    """Tests for the log-linearised exponential fit."""

    def test_two_points_reproduced_exactly(self):
        x = np.array([0.0, 100.0])
        y = np.array([5.0, 20.0])

        curve = fit_exponential(x, y)

        assert curve.kind == FitKind.EXPONENTIAL
        np.testing.assert_allclose(curve.predict(x), y, rtol=1e-10)
        print("[PASS] Exponential through 2 points")

    def test_log_linear_data_reproduced(self):
        x = np.array([0.0, 60.0, 120.0, 180.0])
        y = 3.0 * np.exp(0.01 * x)

        curve = fit_exponential(x, y, weighted=True)

        np.testing.assert_allclose(curve.predict(x), y, rtol=1e-9)
        np.testing.assert_allclose(curve.predict(240.0), 3.0 * np.exp(2.4), rtol=1e-9)

    def test_non_positive_values_ignored(self):
        x = np.array([0.0, 1.0, 2.0, 3.0])
        y = np.array([0.0, 2.0, -1.0, 8.0])

        curve = fit_exponential(x, y)

        # Fitted through (1, 2) and (3, 8) only
        np.testing.assert_allclose(curve.predict(np.array([1.0, 3.0])), [2.0, 8.0], rtol=1e-9)

    def test_single_positive_point_degenerate(self):
        curve = fit_exponential([0.0, 1.0, 2.0], [0.0, 0.0, 4.0])

        assert curve.is_degenerate

    def test_constant_x_degenerate(self):
        curve = fit_exponential([3.0, 3.0], [1.0, 2.0])

        assert curve.is_degenerate


class TestBestFit:
    """Tests for best-of model selection."""

    def test_exponential_data_selects_exponential(self):
        x = np.arange(10, dtype=float)
        y = np.exp(0.5 * x)

        curve = fit_best(x, y)

        assert curve.kind == FitKind.EXPONENTIAL
        assert curve.rmse == pytest.approx(0.0, abs=1e-6)
        print("[PASS] Exponential selected for exponential data")

    def test_quadratic_data_selects_polynomial(self):
        x = np.arange(10, dtype=float)
        y = 2 + 3 * x + x ** 2

        curve = fit_best(x, y, weighted=True)

        assert curve.kind == FitKind.POLYNOMIAL
        print("[PASS] Polynomial selected for quadratic data")

    def test_exact_polynomial_fit_is_never_beaten(self):
        # Three points are interpolated exactly by the quadratic
        x = np.array([0.0, 1.0, 2.0])
        y = np.array([4.0, 9.0, 5.0])

        curve = fit_best(x, y, exponential_margin=1.0)

        assert curve.kind == FitKind.POLYNOMIAL

    def test_rmse_attached_but_not_compared(self):
        a = fit_best([0.0, 1.0, 2.0], [1.0, 2.0, 5.0])
        b = fit_polynomial([0.0, 1.0, 2.0], [1.0, 2.0, 5.0])

        assert a.rmse is not None
        assert a == b


class TestWeightedRMSE:
    """Tests for the RMSE used in model selection."""

    def test_unweighted_rmse_of_zero_curve(self):
        rmse = weighted_rmse([0.0, 1.0], [3.0, 4.0], degenerate_curve())

        assert rmse == pytest.approx(np.sqrt(12.5))

    def test_weighted_rmse_emphasises_recent_points(self):
        curve = FittedCurve(FitKind.POLYNOMIAL, (0.0, 0.0, 0.0))

        # Error only on the last point: weight 10 of total 11
        rmse = weighted_rmse([0.0, 1.0], [0.0, 1.0], curve, weighted=True)

        assert rmse == pytest.approx(np.sqrt(10.0 / 11.0))


class TestLinearFit:
    """Tests for the straight-line helper."""

    def test_decaying_line_zero_crossing(self):
        x = np.array([0.0, 1.0, 2.0, 3.0])
        fit = fit_linear(x, 10 - 2 * x)

        assert fit.slope == pytest.approx(-2.0)
        assert fit.intercept == pytest.approx(10.0)
        assert fit.zero_crossing == pytest.approx(5.0)

    def test_rising_line_has_no_zero_crossing(self):
        fit = fit_linear([0.0, 1.0, 2.0], [1.0, 2.0, 3.0])

        assert fit.zero_crossing is None
        assert fit.predict(3.0) == pytest.approx(4.0)

    def test_too_few_points(self):
        fit = fit_linear([1.0], [5.0])

        assert fit.slope == 0.0
        assert fit.intercept == 0.0


def run_all_tests():
    """Run all curve fitting tests."""
    print("=" * 60)
    print("Curve Fitting Tests")
    print("=" * 60)

    test_classes = [
        TestSolveLinearSystem,
        TestRecencyWeights,
        TestPolynomialFit,
        TestExponentialFit,
        TestBestFit,
        TestWeightedRMSE,
        TestLinearFit,
    ]

    passed = 0
    failed = 0

    for test_class in test_classes:
        print(f"\n{test_class.__name__}")
        print("-" * 40)

        instance = test_class()
        methods = [m for m in dir(instance) if m.startswith('test_')]

        for method_name in methods:
            method = getattr(instance, method_name)
            try:
                method()
                passed += 1
            except Exception as e:
                print(f"[FAIL] {method_name}: {e}")
                failed += 1

    print("\n" + "=" * 60)
    print(f"Results: {passed} passed, {failed} failed")
    print("=" * 60)

    return failed == 0


if __name__ == '__main__':
    success = run_all_tests()
    sys.exit(0 if success else 1)
