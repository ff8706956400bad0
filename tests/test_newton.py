import unittest

import numpy as np
from scipy import sparse

from src.conformal.newton import (
    ExitCondition,
    Newton,
    Norm,
    SolverNotConvergedError,
    validate_line_search_parameters,
)


class _Quadratic:
    """f(x) = x·Ax/2 - b·x"""

    def __init__(self, a, b):
        self.a = np.asarray(a, dtype=np.float64)
        self.b = np.asarray(b, dtype=np.float64)
        self.x = np.zeros(self.b.size)
        self._last = None

    @property
    def input_dimension(self):
        return self.b.size

    def set_argument(self, x):
        self.x = np.array(x, dtype=np.float64)

    def _value(self):
        return 0.5 * self.x @ self.a @ self.x - self.b @ self.x

    def value(self):
        self._last = self._value()
        return self._last

    def value_change(self):
        return self._value() - self._last

    def gradient(self):
        return self.a @ self.x - self.b

    def hessian(self):
        return sparse.csr_matrix(self.a)


A = np.array([[4.0, 1.0], [1.0, 3.0]])
B = np.array([1.0, 2.0])
SOLUTION = np.linalg.solve(A, B)


def _newton(f, gradient=0.0, estimate=0.0, delta=0.0):
    newton = Newton(f)
    newton.set_epsilon(ExitCondition.GRADIENT, gradient)
    newton.set_epsilon(ExitCondition.ESTIMATE, estimate)
    newton.set_epsilon(ExitCondition.DELTA, delta)
    newton.set_max_iterations(50)
    return newton


class TestNewtonExitConditions(unittest.TestCase):
    def test_gradient_exit_at_stationary_start(self):
        f = _Quadratic(A, np.zeros(2))
        newton = _newton(f)
        x = newton.optimize()
        self.assertIs(newton.exit_condition, ExitCondition.GRADIENT)
        self.assertEqual(newton.exit_error, 0.0)
        self.assertEqual(newton.iterations, 1)
        np.testing.assert_array_equal(x, np.zeros(2))

    def test_converges_to_minimum(self):
        f = _Quadratic(A, B)
        newton = _newton(f, gradient=1e-9)
        x = newton.optimize()
        self.assertIs(newton.exit_condition, ExitCondition.GRADIENT)
        self.assertLessEqual(newton.exit_error, 1e-9)
        np.testing.assert_allclose(x, SOLUTION, atol=1e-9)
        np.testing.assert_array_equal(newton.argmin, x)

    def test_estimate_exit(self):
        f = _Quadratic(A, B)
        newton = _newton(f, estimate=1e3)
        x = newton.optimize()
        self.assertIs(newton.exit_condition, ExitCondition.ESTIMATE)
        # λ²/2 = b·A⁻¹b / 2
        self.assertAlmostEqual(newton.exit_error, 0.5 * B @ SOLUTION, places=8)
        np.testing.assert_array_equal(x, np.zeros(2))

    def test_delta_exit_keeps_last_argument(self):
        f = _Quadratic(A, B)
        newton = _newton(f, delta=1e3)
        x = newton.optimize()
        self.assertIs(newton.exit_condition, ExitCondition.DELTA)
        np.testing.assert_array_equal(x, np.zeros(2))
        np.testing.assert_array_equal(f.x, np.zeros(2))

    def test_iteration_limit(self):
        f = _Quadratic(A, B)
        newton = _newton(f)
        newton.set_max_iterations(1)
        x = newton.optimize()
        self.assertIs(newton.exit_condition, ExitCondition.ITERATIONS)
        self.assertEqual(newton.exit_error, 1.0)
        np.testing.assert_allclose(x, SOLUTION, atol=1e-8)

    def test_starting_point(self):
        f = _Quadratic(A, B)
        newton = _newton(f, gradient=1e-9)
        newton.starting_point = SOLUTION.copy()
        newton.optimize()
        self.assertIs(newton.exit_condition, ExitCondition.GRADIENT)
        self.assertEqual(newton.iterations, 1)

    def test_empty_problem(self):
        f = _Quadratic(np.zeros((0, 0)), np.zeros(0))
        newton = Newton(f)
        x = newton.optimize()
        self.assertEqual(x.shape, (0,))
        self.assertIs(newton.exit_condition, ExitCondition.GRADIENT)


class TestNewtonLinearSolve(unittest.TestCase):
    def test_cg_failure_is_reported(self):
        a = np.diag([1.0, 10.0, 100.0]) + 0.1
        f = _Quadratic(a, np.array([1.0, -2.0, 3.0]))
        newton = _newton(f, gradient=1e-12)
        newton.cg_max_iterations = 1
        with self.assertRaises(SolverNotConvergedError) as ctx:
            newton.optimize()
        self.assertGreater(ctx.exception.info, 0)
        self.assertIn("conjugate gradient", ctx.exception.reason)


class TestNewtonConfiguration(unittest.TestCase):
    def setUp(self):
        self.newton = Newton(_Quadratic(A, B))

    def test_defaults(self):
        newton = self.newton
        self.assertEqual(newton.grad_epsilon, 1e-14)
        self.assertIs(newton.grad_norm, Norm.TWO)
        self.assertEqual((newton.alpha, newton.beta, newton.gamma), (0.25, 0.75, 0.01))

    def test_invalid_epsilon(self):
        with self.assertRaises(ValueError):
            self.newton.set_epsilon(ExitCondition.GRADIENT, -1.0)
        with self.assertRaises(ValueError):
            self.newton.set_epsilon(ExitCondition.ITERATIONS, 1.0)

    def test_norm_only_for_gradient_and_delta(self):
        self.newton.set_norm(ExitCondition.DELTA, Norm.ONE)
        self.assertIs(self.newton.delta_norm, Norm.ONE)
        with self.assertRaises(ValueError):
            self.newton.set_norm(ExitCondition.ESTIMATE, Norm.TWO)

    def test_invalid_max_iterations(self):
        with self.assertRaises(ValueError):
            self.newton.set_max_iterations(0)

    def test_line_search_parameters(self):
        self.newton.line_search_parameters(0.1, 0.5, 0.0)
        self.assertEqual((self.newton.alpha, self.newton.beta, self.newton.gamma), (0.1, 0.5, 0.0))
        for params in ((0.5, 0.5, 0.1), (0.0, 0.5, 0.1), (0.25, 1.0, 0.1), (0.25, 0.5, 0.6), (0.25, 0.5, -0.1)):
            with self.assertRaises(ValueError):
                validate_line_search_parameters(*params)

    def test_norms(self):
        v = np.array([1.0, -3.0])
        self.assertEqual(Norm.ONE.of(v), 4.0)
        self.assertEqual(Norm.INFINITY.of(v), 3.0)
        self.assertAlmostEqual(Norm.TWO.of(v), np.sqrt(10.0), places=15)
        self.assertEqual(Norm.INFINITY.of(np.zeros(0)), 0.0)


if __name__ == "__main__":
    unittest.main()
