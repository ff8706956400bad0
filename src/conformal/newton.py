"""
Damped Newton minimizer with backtracking line search.

The Newton step solves ``H Δ = -g`` with the conjugate gradient method from
scipy, so the Hessian only has to be symmetric positive (semi-)definite.
"""

from __future__ import annotations

from enum import Enum
import logging
from typing import Optional, Protocol

import numpy as np
from scipy.sparse.linalg import cg

_LOGGER = logging.getLogger(__name__)


class Functional(Protocol):
    """Function of a real vector as required by :class:`Newton`."""

    @property
    def input_dimension(self) -> int:
        ...

    def set_argument(self, x: np.ndarray) -> None:
        ...

    def value(self) -> float:
        ...

    def value_change(self) -> float:
        ...

    def gradient(self) -> np.ndarray:
        ...

    def hessian(self):
        ...


class ExitCondition(Enum):
    GRADIENT = "gradient"
    ESTIMATE = "estimate"
    DELTA = "delta"
    ITERATIONS = "iterations"


class Norm(Enum):
    ONE = 1
    TWO = 2
    INFINITY = np.inf

    def of(self, vector: np.ndarray) -> float:
        v = np.asarray(vector, dtype=np.float64).reshape(-1)
        if v.size == 0:
            return 0.0
        return float(np.linalg.norm(v, ord=self.value))


class SolverNotConvergedError(RuntimeError):
    """The linear solve of a Newton step did not converge."""

    def __init__(self, reason: str, info: int = 0):
        self.reason = reason
        self.info = int(info)
        super().__init__(reason)


def validate_line_search_parameters(alpha: float, beta: float, gamma: float) -> None:
    if not 0 < alpha < 0.5:
        raise ValueError("0 < alpha < 0.5")
    if not 0 < beta < 1:
        raise ValueError("0 < beta < 1")
    if not 0 <= gamma <= beta:
        raise ValueError("0 <= gamma <= beta")


class Newton:
    """
    Newton's method for convex functionals.

    Each iteration checks, in this order, the gradient norm (GRADIENT), the
    Newton decrement ``λ²/2`` (ESTIMATE) and the length of the damped step
    (DELTA); the loop ends with ITERATIONS after ``max_iterations`` steps.
    """

    def __init__(self, f: Functional):
        self.f = f
        self.grad_epsilon = 1e-14
        self.estimate_epsilon = 1e-14
        self.delta_epsilon = 1e-14
        self.grad_norm = Norm.TWO
        self.delta_norm = Norm.TWO
        self.max_iterations = 2**31 - 1
        self.alpha = 0.25
        self.beta = 0.75
        self.gamma = 0.01
        self.cg_tolerance = 1e-10
        self.cg_max_iterations: Optional[int] = None
        self.starting_point: Optional[np.ndarray] = None

        self.exit_condition: Optional[ExitCondition] = None
        self.exit_error = float("nan")
        self.argmin: Optional[np.ndarray] = None
        self.iterations = 0

    def set_epsilon(self, condition: ExitCondition, epsilon: float) -> None:
        if epsilon < 0:
            raise ValueError("Epsilon may not be negative")
        if condition is ExitCondition.GRADIENT:
            self.grad_epsilon = float(epsilon)
        elif condition is ExitCondition.ESTIMATE:
            self.estimate_epsilon = float(epsilon)
        elif condition is ExitCondition.DELTA:
            self.delta_epsilon = float(epsilon)
        else:
            raise ValueError(f"Exit condition {condition} has no associated epsilon bound")

    def set_norm(self, condition: ExitCondition, norm: Norm) -> None:
        if not isinstance(norm, Norm):
            raise TypeError(f"norm must be a Norm, got {norm!r}")
        if condition is ExitCondition.GRADIENT:
            self.grad_norm = norm
        elif condition is ExitCondition.DELTA:
            self.delta_norm = norm
        else:
            raise ValueError(f"Exit condition {condition} has no associated norm")

    def set_max_iterations(self, max_iterations: int) -> None:
        if int(max_iterations) < 1:
            raise ValueError("max_iterations must be at least 1")
        self.max_iterations = int(max_iterations)

    def line_search_parameters(self, alpha: float, beta: float, gamma: float) -> None:
        """
        Args:
            alpha: accepted fraction of the predicted change, 0 < alpha < 0.5
            beta: step decay factor, 0 < beta < 1
            gamma: smallest step fraction, 0 <= gamma <= beta
        """
        validate_line_search_parameters(alpha, beta, gamma)
        self.alpha = float(alpha)
        self.beta = float(beta)
        self.gamma = float(gamma)

    def _solve(self, h, rhs: np.ndarray) -> np.ndarray:
        delta, info = cg(
            h,
            rhs,
            x0=np.zeros_like(rhs),
            rtol=self.cg_tolerance,
            atol=0.0,
            maxiter=self.cg_max_iterations,
        )
        if info > 0:
            raise SolverNotConvergedError(
                f"conjugate gradient did not converge within {info} iterations", info
            )
        if info < 0:
            raise SolverNotConvergedError("conjugate gradient breakdown (illegal input)", info)
        return np.asarray(delta, dtype=np.float64)

    def optimize(self) -> np.ndarray:
        f = self.f
        size = int(f.input_dimension)
        x = np.zeros(size, dtype=np.float64)
        if self.starting_point is not None:
            x[:] = np.asarray(self.starting_point, dtype=np.float64).reshape(-1)

        _LOGGER.debug("Starting optimization (dimension %d)", size)
        f.set_argument(x)
        self.iterations = 0
        for i in range(1, self.max_iterations + 1):
            self.iterations = i
            _LOGGER.debug("Iteration %d", i)
            g = f.gradient()
            grad_norm = self.grad_norm.of(g)
            _LOGGER.debug("Gradient norm: %r", grad_norm)
            if grad_norm <= self.grad_epsilon:
                return self._finish(ExitCondition.GRADIENT, grad_norm, x)

            h = f.hessian()
            g = -g
            v = f.value()
            _LOGGER.debug("Function value: %r", v)
            delta = self._solve(h, g)
            lamda_sq = float(np.dot(g, delta))
            _LOGGER.debug("lambda^2: %r", lamda_sq)
            if lamda_sq / 2 <= self.estimate_epsilon:
                return self._finish(ExitCondition.ESTIMATE, lamda_sq / 2, x)

            delta_norm = self.delta_norm.of(delta)
            _LOGGER.debug("Delta norm: %r", delta_norm)
            t = 1.0
            while True:
                if t < self.gamma:
                    t = self.gamma
                _LOGGER.debug("Line search t: %r", t)
                if t * delta_norm <= self.delta_epsilon:
                    f.set_argument(x)
                    return self._finish(ExitCondition.DELTA, t * delta_norm, x)
                x2 = x + t * delta
                f.set_argument(x2)
                change = f.value_change()
                # 완화된 Armijo 조건
                if change <= self.alpha * t * lamda_sq or t == self.gamma:
                    break
                t *= self.beta
            x = x2

        return self._finish(ExitCondition.ITERATIONS, float(self.max_iterations), x)

    def _finish(self, condition: ExitCondition, error: float, x: np.ndarray) -> np.ndarray:
        _LOGGER.info("Condition: %s, error: %r", condition.name, error)
        self.exit_condition = condition
        self.exit_error = float(error)
        self.argmin = x
        return x
