import logging

import numpy as np
import scipy.linalg

from emme.errors import InvalidArgument
from emme.matrix import Matrix

logger = logging.getLogger(__name__)


def null_space(matrix, tol=None):
    """
    Approximate null space of a square matrix from its SVD.

    The right singular vectors whose singular value is below the threshold
    are returned as columns. At a converged eigenvalue this is the eigenmode.

    Args:
        matrix: Square Matrix (or 2D array).
        tol: Absolute threshold on the singular values. Defaults to
            eps * max(rows, cols) * s_max.

    Raises:
        InvalidArgument: If the matrix is not square.

    Returns:
        Matrix of shape (rows, k). k == 0 means no singular value fell below
        the threshold and the mode is undefined; this is logged, not raised.
        The zero matrix has the whole space as its null space.
    """
    a = np.asarray(matrix)
    if a.ndim != 2 or a.shape[0] != a.shape[1]:
        raise InvalidArgument(f"Input matrix must be square, got shape {a.shape}")

    n = a.shape[0]
    if n == 0:
        return Matrix(0, 0, dtype=a.dtype)

    _, s, vh = scipy.linalg.svd(a)
    if tol is None:
        eps = np.finfo(a.dtype).eps if np.issubdtype(a.dtype, np.inexact) else np.finfo(float).eps
        tol = eps * n * s[0]

    # a zero threshold (zero matrix, or tol=0) still selects exact zeros
    selected = np.flatnonzero(s < tol) if tol > 0 else np.flatnonzero(s == 0)
    # right singular vectors are the rows of vh, conjugated
    basis = Matrix(n, len(selected), dtype=vh.dtype)
    for col, k in enumerate(selected):
        basis.set_col(col, vh[k].conj())

    if len(selected) == 0:
        logger.warning("No singular value below %.3e (smallest %.3e): null space is empty",
                       tol, s[-1])
    else:
        logger.debug("Null space of dimension %d (threshold %.3e)", len(selected), tol)
    return basis
