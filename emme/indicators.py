"""
Scalar convergence indicators g(lambda) computed from the assembled matrix.

Each indicator vanishes when the matrix is singular, i.e. at an eigenvalue,
and is smooth in a neighbourhood of a simple eigenvalue, which is all the
secant driver needs. A matrix holding inf/nan (an overflowing kernel) maps
to nan, which the driver reports as stagnation.
"""
import numpy as np
import scipy.linalg

from emme.errors import InvalidArgument


def _finite_array(matrix):
    a = np.asarray(matrix)
    if not np.all(np.isfinite(a)):
        return None
    return a


def inverse_trace(matrix):
    """
    1 / trace(M^-1).

    Near a simple eigenvalue trace(M^-1) grows like c / (lambda - lambda*),
    so its reciprocal crosses zero linearly.
    """
    a = _finite_array(matrix)
    if a is None:
        return complex(np.nan)
    try:
        inv = scipy.linalg.inv(a)
    except np.linalg.LinAlgError:
        # exactly singular: we are sitting on the eigenvalue
        return 0j
    trace = np.trace(inv)
    if trace == 0:
        return complex(np.inf)
    return complex(1.0 / trace)


def determinant(matrix):
    """Determinant of M with each row scaled by 1/|M_ii|."""
    a = _finite_array(matrix)
    if a is None:
        return complex(np.nan)
    d = np.abs(np.diag(a))
    # the diagonal does not depend on lambda, so neither does the scaling
    scale = np.where(d > 0, 1.0 / np.where(d > 0, d, 1.0), 1.0)
    return complex(scipy.linalg.det(a * scale[:, np.newaxis]))


def smallest_eigenvalue(matrix):
    """Eigenvalue of M with the smallest modulus."""
    a = _finite_array(matrix)
    if a is None:
        return complex(np.nan)
    evals = scipy.linalg.eigvals(a)
    return complex(evals[np.argmin(np.abs(evals))])


INDICATORS = {
    'inverse_trace': inverse_trace,
    'determinant': determinant,
    'smallest_eigenvalue': smallest_eigenvalue,
}


def get_indicator(name):
    try:
        return INDICATORS[name]
    except KeyError:
        raise InvalidArgument(
            f"Unknown indicator '{name}', expected one of {sorted(INDICATORS)}"
        ) from None
