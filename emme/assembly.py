"""
Quadrature assembly of the nonlinear eigenvalue matrix F(lambda).

Diagonal entries are closed-form and filled on the calling thread. Every
unordered off-diagonal pair (i, j), i < j, becomes one task: it evaluates the
kernels once and writes all the cells the block symmetries derive from that
pair, so no two tasks ever touch the same cell and the result does not depend
on scheduling.

    same-field blocks:  M[j, i]     =  M[i, j]
    cross-field blocks: M[j, i + n] = -M[i, j + n]

Without a pool the same tasks run inline, which is the single-threaded
reference.
"""
import logging
from concurrent.futures import Future
from functools import partial

import numpy as np

from emme.errors import DimensionMismatch, TaskFailure
from emme.matrix import Matrix
from emme.thread_pool import Task

logger = logging.getLogger(__name__)


def _check_dimensions(coeff_matrix, grid):
    n = grid.npoints
    if tuple(coeff_matrix.shape) != (n, n):
        raise DimensionMismatch(
            f"coefficient matrix has shape {tuple(coeff_matrix.shape)}, grid has {n} points"
        )


def _dispatch(tasks, pool):
    """
    Run (cell, fn) tasks and wait for every one of them.

    Exceptions are collected until the last future has been joined, then
    the first one is re-raised as TaskFailure.
    """
    futures = []
    for cell, fn in tasks:
        if pool is None:
            task = Task(fn, Future())
            task.run()
            futures.append((cell, task.future))
        else:
            futures.append((cell, pool.queue_task(fn)))

    failure = None
    for cell, future in futures:
        exc = future.exception()
        if exc is not None and failure is None:
            failure = (cell, exc)

    if failure is not None:
        cell, exc = failure
        raise TaskFailure(f"kernel evaluation for pair {cell} failed: {exc!r}", cell=cell) from exc
    return len(futures)


# --- single field ---

def _fill_single(M, kernel, coeff_matrix, points, dx, lam, i, j):
    M[i, j] = -kernel(points[i], points[j], lam) * coeff_matrix[i, j] * dx
    M[j, i] = M[i, j]


def assemble(lam, kernel, coeff_matrix, grid, *, tau=1.0, pool=None):
    """
    Assemble the single-field matrix of size npoints x npoints.

    Args:
        lam: Candidate eigenvalue.
        kernel: kernel(eta, eta_p, lam) -> complex, symmetric in (eta, eta_p).
        coeff_matrix: Real quadrature coefficients, npoints x npoints.
        grid: Grid the kernel is sampled on.
        tau: Temperature ratio, sets the diagonal 1 + 1/tau.
        pool: DedicatedThreadPool, or None to run on the calling thread.

    Returns:
        Complex Matrix.
    """
    _check_dimensions(coeff_matrix, grid)
    n = grid.npoints
    points = [float(x) for x in grid.grid]
    lam = complex(lam)

    M = Matrix(n, n, dtype=np.complex128)
    for i in range(n):
        M[i, i] = 1.0 + 1.0 / tau

    tasks = [
        ((i, j), partial(_fill_single, M, kernel, coeff_matrix, points, grid.dx, lam, i, j))
        for i in range(n) for j in range(i + 1, n)
    ]
    count = _dispatch(tasks, pool)
    logger.debug("Assembled %dx%d matrix at lambda=%s with %d tasks", n, n, lam, count)
    return M


# --- two field ---

def _fill_two_field(M, kappa, coeff_matrix, points, dx, n, lam, i, j):
    M[i, j] = -kappa(0, points[i], points[j], lam) * coeff_matrix[i, j] * dx
    M[i, j + n] = kappa(1, points[i], points[j], lam) * dx
    M[i + n, j + n] = kappa(2, points[i], points[j], lam) * dx

    M[j, i] = M[i, j]
    M[j, i + n] = -M[i, j + n]
    M[j + n, i + n] = M[i + n, j + n]
    M[i + n, j] = M[j, i + n]
    M[j + n, i] = M[i, j + n]


def assemble_two_field(lam, model, coeff_matrix, grid, *, pool=None):
    """
    Assemble the 2n x 2n block matrix of the electromagnetic model.

    Blocks (n = grid.npoints):
        [0:n, 0:n]     electrostatic, kappa(0) weighted by coeff_matrix
        [0:n, n:2n]    coupling, kappa(1), antisymmetric mirror
        [n:2n, n:2n]   magnetic, kappa(2); diagonal (2 tau / beta_e) bi(eta)
    """
    _check_dimensions(coeff_matrix, grid)
    n = grid.npoints
    points = [float(x) for x in grid.grid]
    lam = complex(lam)
    tau, beta_e = model.tau, model.beta_e

    M = Matrix(2 * n, 2 * n, dtype=np.complex128)
    for i in range(n):
        M[i, i] = 1.0 + 1.0 / tau
        M[i, i + n] = 0.0
        M[i + n, i] = 0.0
        M[i + n, i + n] = (2.0 * tau) / beta_e * model.bi(points[i])

    tasks = [
        ((i, j), partial(_fill_two_field, M, model.kappa, coeff_matrix, points, grid.dx, n, lam, i, j))
        for i in range(n) for j in range(i + 1, n)
    ]
    count = _dispatch(tasks, pool)
    logger.debug("Assembled %dx%d block matrix at lambda=%s with %d tasks", 2 * n, 2 * n, lam, count)
    return M


def F(lam, model, coeff_matrix, grid, *, pool=None):
    """F(lambda) for a physics model, block variant when the model is two-field."""
    if model.two_field:
        return assemble_two_field(lam, model, coeff_matrix, grid, pool=pool)
    return assemble(lam, model.kernel, coeff_matrix, grid, tau=model.tau, pool=pool)


def assemble_serial(lam, kernel, coeff_matrix, grid, *, tau=1.0):
    return assemble(lam, kernel, coeff_matrix, grid, tau=tau, pool=None)
