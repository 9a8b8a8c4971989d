import matplotlib.pyplot as plt
import numpy as np
import pytest

from emme.grid import Grid
from emme.plotting import plot_eigenmode, plot_sweep
from emme.solver import SecantState
from emme.sweep import SweepPoint


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close('all')


def test_single_field_mode():
    grid = Grid(4.0, 8)
    fig = plot_eigenmode(grid, np.exp(1j * grid.grid), 1.0 + 0.5j)
    assert len(fig.axes) == 1


def test_two_field_mode_is_split():
    grid = Grid(4.0, 8)
    fig = plot_eigenmode(grid, np.ones(16, dtype=complex))
    assert len(fig.axes) == 2


def test_sweep(tmp_path):
    points = [SweepPoint(v, complex(v, 0.1 * v), SecantState.CONVERGED, 3) for v in (1.0, 2.0, 3.0)]
    points.append(SweepPoint(4.0, 1.0j, SecantState.FAILED, 0))
    fig = plot_sweep(points, 'eta_i')
    assert len(fig.axes) == 2
    fig.savefig(tmp_path / "sweep.png")
    assert (tmp_path / "sweep.png").exists()
