import csv
import logging
from pathlib import Path

import numpy as np

logger = logging.getLogger(__name__)


def save_result(path, result, grid, eigenvectors=None):
    """
    Save a solve to a .npz archive.

    Keys: eigenvalue, state, iterations, grid, matrix, eigenvectors and
    history (an (n_evaluations, 2) complex array of lambda, g).
    """
    path = Path(path)
    matrix = np.asarray(result.matrix) if result.matrix is not None else np.empty((0, 0), dtype=np.complex128)
    if eigenvectors is None:
        eigenvectors = np.empty((matrix.shape[0], 0), dtype=np.complex128)
    history = np.array(result.history, dtype=np.complex128).reshape(-1, 2)

    np.savez(path,
             eigenvalue=np.complex128(result.eigenvalue),
             state=result.state.value,
             iterations=result.iterations,
             grid=np.asarray(grid.grid),
             matrix=matrix,
             eigenvectors=np.asarray(eigenvectors),
             history=history)
    logger.info("Saved result to %s", path)


def write_sweep_csv(path, points):
    """Write value, gamma, omega, state, iterations for each sweep point."""
    path = Path(path)
    with open(path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(['value', 'gamma', 'omega', 'state', 'iterations'])
        for p in points:
            writer.writerow([repr(p.value), repr(p.gamma), repr(p.omega), p.state.value, p.iterations])
    logger.info("Wrote %d sweep points to %s", len(points), path)
