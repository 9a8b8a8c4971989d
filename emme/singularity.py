import numpy as np

from emme.matrix import Matrix


def singularity_handler(npoints):
    """
    Real quadrature coefficients for the electrostatic block.

    The assembly never evaluates the kernel at eta == eta', so the diagonal
    weight of the trapezoidal rule is dropped and half of it is handed to each
    neighbour (punctured trapezoid rule). End points carry the usual factor
    one half. The result is symmetric, which the mirrored assembly requires.

    Args:
        npoints: Grid size.

    Returns:
        Matrix of shape (npoints, npoints), zero on the diagonal.
    """
    w = np.ones(npoints)
    if npoints > 1:
        w[0] *= 0.5
        w[-1] *= 0.5

    coeff = np.sqrt(np.outer(w, w))
    np.fill_diagonal(coeff, 0.0)

    # first off-diagonals pick up the punctured weight
    k = np.arange(npoints - 1)
    coeff[k, k + 1] += 0.5
    coeff[k + 1, k] += 0.5

    return Matrix.from_array(coeff)
