import matplotlib
matplotlib.use("Agg")

from dataclasses import dataclass

import numpy as np
import pytest

from emme.thread_pool import DedicatedThreadPool


@pytest.fixture
def pool():
    with DedicatedThreadPool(4) as p:
        yield p


@dataclass
class LinearModel:
    """
    Single-field test model with kernel(eta, eta', lam) = lam.

    F(lam) = (1 + 1/tau) I - lam dx C, so the eigenvalues are
    (1 + 1/tau) / mu for the eigenvalues mu of dx C.
    """
    tau: float = 1.0
    beta_e: float = 0.0
    two_field: bool = False

    def kernel(self, eta, eta_p, lam):
        return lam

    def kappa(self, m, eta, eta_p, lam):
        return lam

    def bi(self, eta):
        return 1.0

    def reinitialize(self, **changes):
        for name, value in changes.items():
            setattr(self, name, value)


def linear_model_eigenvalue(model, coeff_matrix, grid):
    """Eigenvalue of LinearModel belonging to the largest mu."""
    mu = np.linalg.eigvalsh(np.asarray(coeff_matrix) * grid.dx)
    return (1.0 + 1.0 / model.tau) / mu[-1]
