"""
Secant iteration in the complex plane for the nonlinear eigenvalue problem.

Starting from two candidates the driver repeatedly assembles F(lambda),
reduces it to a scalar indicator g(lambda) and applies

    lambda_{k+1} = lambda_k - g_k (lambda_k - lambda_{k-1}) / (g_k - g_{k-1})

until |lambda_{k+1} - lambda_k| < tol |lambda_{k+1}| or the step budget is
spent. Every evaluation is one full (parallel) assembly with a barrier at
the end; the budget is only checked between evaluations.

Outcomes are returned, not raised: SecantResult.state tells converged,
iteration limit and failure apart, and SecantResult.error carries the
TaskFailure / Stagnation / IterationLimitExceeded instance.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Any, Optional

import numpy as np

from emme.assembly import F
from emme.errors import InvalidArgument, IterationLimitExceeded, Stagnation, TaskFailure
from emme.indicators import get_indicator, inverse_trace

logger = logging.getLogger(__name__)

# relative offset of the second starting point when none is given
SECOND_GUESS_OFFSET = 1e-3


class SecantState(Enum):
    INITIALIZING = 'initializing'
    ASSEMBLING = 'assembling'
    EVALUATING = 'evaluating'
    CONVERGED = 'converged'
    ITERATION_LIMIT_EXCEEDED = 'iteration_limit_exceeded'
    FAILED = 'failed'

    @property
    def terminal(self):
        return self in (SecantState.CONVERGED, SecantState.ITERATION_LIMIT_EXCEEDED, SecantState.FAILED)


@dataclass
class EigenvalueIterate:
    lambda_prev: complex
    lambda_curr: complex
    g_prev: complex
    g_curr: complex

    @property
    def d_eigen_value(self):
        return self.lambda_curr - self.lambda_prev


@dataclass
class SecantResult:
    """
    Attributes:
        state: Terminal SecantState.
        eigenvalue: Last lambda the matrix was assembled at.
        matrix: Matrix assembled at `eigenvalue` (None if no assembly succeeded).
        iterations: Number of secant updates performed.
        history: (lambda, g) for every evaluation, in order.
        error: TaskFailure, Stagnation or IterationLimitExceeded; None on convergence.
    """
    state: SecantState
    eigenvalue: complex
    matrix: Any
    iterations: int
    history: list = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def converged(self):
        return self.state is SecantState.CONVERGED

    def raise_for_status(self):
        if self.error is not None:
            raise self.error
        return self


def second_guess(lambda0):
    if lambda0 == 0:
        return complex(SECOND_GUESS_OFFSET)
    return lambda0 * (1.0 + SECOND_GUESS_OFFSET)


def _finite(z):
    return bool(np.isfinite(z))


class SecantDriver:
    """
    Args:
        evaluate: evaluate(lam) -> Matrix, the assembly at a candidate.
        indicator: indicator(matrix) -> complex, zero at eigenvalues.
        tol: Relative tolerance on the lambda update.
        iteration_step_limit: Maximum number of secant updates.
    """

    def __init__(self, evaluate, indicator=inverse_trace, tol=1e-6, iteration_step_limit=50):
        if not tol > 0:
            raise InvalidArgument(f"tol must be positive, got {tol}")
        if int(iteration_step_limit) != iteration_step_limit or iteration_step_limit < 0:
            raise InvalidArgument(f"iteration_step_limit must be a non-negative integer, got {iteration_step_limit}")
        self.evaluate = evaluate
        self.indicator = indicator
        self.tol = tol
        self.iteration_step_limit = int(iteration_step_limit)

        self.state = SecantState.INITIALIZING
        self.iterate = None
        self.history = []

    def _evaluate(self, lam):
        try:
            self.state = SecantState.ASSEMBLING
            matrix = self.evaluate(lam)
            self.state = SecantState.EVALUATING
            g = complex(self.indicator(matrix))
        except Exception:
            # run() turns a TaskFailure into a result, anything else propagates
            self.state = SecantState.FAILED
            raise
        self.history.append((lam, g))
        return matrix, g

    def _finish(self, state, lam, matrix, iterations, error=None):
        self.state = state
        if state is SecantState.CONVERGED:
            logger.info("Converged to lambda=%s after %d iterations", lam, iterations)
        else:
            logger.warning("Secant iteration stopped (%s) at lambda=%s after %d iterations: %s",
                           state.value, lam, iterations, error)
        return SecantResult(state, lam, matrix, iterations, list(self.history), error)

    def run(self, lambda0, lambda1=None):
        self.state = SecantState.INITIALIZING
        self.iterate = None
        self.history = []

        lambda0 = complex(lambda0)
        lambda1 = second_guess(lambda0) if lambda1 is None else complex(lambda1)
        if lambda1 == lambda0:
            raise InvalidArgument("the two starting points of the secant method must differ")

        # --- 1. two starting evaluations ---
        try:
            matrix, g0 = self._evaluate(lambda0)
        except TaskFailure as exc:
            return self._finish(SecantState.FAILED, lambda0, None, 0, exc)
        try:
            matrix_1, g1 = self._evaluate(lambda1)
        except TaskFailure as exc:
            # lambda0 was assembled, report it with its matrix
            return self._finish(SecantState.FAILED, lambda0, matrix, 0, exc)
        matrix = matrix_1

        self.iterate = EigenvalueIterate(lambda0, lambda1, g0, g1)
        if not (_finite(g0) and _finite(g1)):
            return self._finish(SecantState.FAILED, lambda1, matrix, 0,
                                Stagnation(f"indicator is not finite at the starting points ({g0}, {g1})"))
        if g1 == 0:
            return self._finish(SecantState.CONVERGED, lambda1, matrix, 0)

        # --- 2. secant updates ---
        for step in range(1, self.iteration_step_limit + 1):
            it = self.iterate
            denom = it.g_curr - it.g_prev
            if denom == 0 or not _finite(denom):
                return self._finish(SecantState.FAILED, it.lambda_curr, matrix, step - 1,
                                    Stagnation(f"g_k - g_(k-1) = {denom} at lambda={it.lambda_curr}"))

            lam_next = it.lambda_curr - it.g_curr * it.d_eigen_value / denom
            if not _finite(lam_next):
                return self._finish(SecantState.FAILED, it.lambda_curr, matrix, step - 1,
                                    Stagnation(f"secant step produced lambda={lam_next}"))

            try:
                matrix_next, g_next = self._evaluate(lam_next)
            except TaskFailure as exc:
                return self._finish(SecantState.FAILED, it.lambda_curr, matrix, step - 1, exc)

            matrix = matrix_next
            self.iterate = EigenvalueIterate(it.lambda_curr, lam_next, it.g_curr, g_next)
            logger.debug("step %d: lambda=%s g=%s |d lambda|=%.3e",
                         step, lam_next, g_next, abs(self.iterate.d_eigen_value))

            if not _finite(g_next):
                return self._finish(SecantState.FAILED, lam_next, matrix, step,
                                    Stagnation(f"indicator is not finite at lambda={lam_next}"))
            if g_next == 0 or abs(self.iterate.d_eigen_value) < self.tol * abs(lam_next):
                return self._finish(SecantState.CONVERGED, lam_next, matrix, step)

        return self._finish(
            SecantState.ITERATION_LIMIT_EXCEEDED, self.iterate.lambda_curr, matrix, self.iteration_step_limit,
            IterationLimitExceeded(f"no convergence within {self.iteration_step_limit} iterations"),
        )


def estimate_lambda0(model, coeff_matrix, grid):
    """Starting guess from the model, for models that provide estimate_eigenvalue()."""
    estimate = getattr(model, 'estimate_eigenvalue', None)
    if estimate is None:
        raise InvalidArgument(f"{type(model).__name__} has no eigenvalue estimate, an initial guess is required")
    lambda0 = complex(estimate(coeff_matrix, grid))
    logger.info("Starting from the model estimate lambda=%s", lambda0)
    return lambda0


def solve(lambda0, tol, model, coeff_matrix, grid, iteration_step_limit, *,
          lambda1=None, indicator=None, pool=None):
    """
    Locate the eigenvalue of F(lambda) closest to the starting guess.

    Args:
        lambda0: Initial guess, or None to start from model.estimate_eigenvalue().
        tol: Relative tolerance on the lambda update.
        model: PhysicsModel providing the kernels.
        coeff_matrix: Real quadrature coefficients (npoints x npoints).
        grid: Grid the kernels are sampled on.
        iteration_step_limit: Maximum number of secant updates.
        lambda1: Second starting point, defaults to a small offset from lambda0.
        indicator: Callable or name from emme.indicators.INDICATORS.
        pool: DedicatedThreadPool used for the assembly; None assembles serially.

    Returns:
        SecantResult
    """
    if indicator is None:
        indicator = inverse_trace
    elif isinstance(indicator, str):
        indicator = get_indicator(indicator)

    if lambda0 is None:
        lambda0 = estimate_lambda0(model, coeff_matrix, grid)

    evaluate = partial(F, model=model, coeff_matrix=coeff_matrix, grid=grid, pool=pool)
    driver = SecantDriver(evaluate, indicator, tol, iteration_step_limit)
    return driver.run(lambda0, lambda1)
