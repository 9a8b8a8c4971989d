import logging
from dataclasses import dataclass

from tqdm import tqdm

from emme.solver import SecantState, solve

logger = logging.getLogger(__name__)


@dataclass
class SweepPoint:
    value: float
    eigenvalue: complex
    state: SecantState
    iterations: int

    @property
    def gamma(self):
        """Growth rate, Im(lambda)."""
        return self.eigenvalue.imag

    @property
    def omega(self):
        """Real frequency, Re(lambda)."""
        return self.eigenvalue.real


def parameter_sweep(model, name, values, coeff_matrix, grid, *, lambda0, tol, iteration_step_limit,
                    indicator=None, pool=None, progress=True):
    """
    Follow one eigenvalue while a physical parameter is scanned.

    The model is reinitialized with `name=value` between solves, never during
    one. Each solve starts from the previous converged eigenvalue; after a
    point that did not converge the sweep falls back to `lambda0`. With
    lambda0=None every point starts from the model's own estimate instead.

    Args:
        model: PhysicsModel, mutated in place.
        name: Parameter to scan (any argument accepted by model.reinitialize).
        values: Sequence of values for `name`.
        coeff_matrix, grid: As for emme.solver.solve.
        lambda0: Initial guess for the first point, or None.
        tol, iteration_step_limit, indicator, pool: Passed to solve.
        progress: Show a tqdm progress bar.

    Returns:
        list of SweepPoint, one per value.
    """
    points = []
    restart = None if lambda0 is None else complex(lambda0)
    guess = restart

    for value in tqdm(values, desc=f"Scanning {name}", disable=not progress):
        model.reinitialize(**{name: value})
        result = solve(guess, tol, model, coeff_matrix, grid, iteration_step_limit,
                       indicator=indicator, pool=pool)
        points.append(SweepPoint(float(value), result.eigenvalue, result.state, result.iterations))

        if result.converged and restart is not None:
            guess = result.eigenvalue
        elif not result.converged:
            logger.warning("%s=%g did not converge (%s), restarting from %s",
                           name, value, result.state.value, 'lambda0' if restart is not None else 'the estimate')
            guess = restart

    return points
