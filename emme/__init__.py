"""
emme: eigenvalue search for integral gyrokinetic micro-instability models.

    from emme import Grid, Tokamak, singularity_handler, solve, null_space

    grid = Grid.centered(10.0, 32)
    result = solve(1.0 + 0.5j, 1e-6, Tokamak(), singularity_handler(32), grid, 50)
    mode = null_space(result.matrix, tol=1e-6)
"""
from emme.assembly import F, assemble, assemble_serial, assemble_two_field
from emme.errors import (
    ConfigError,
    DimensionMismatch,
    EmmeError,
    InvalidArgument,
    IterationLimitExceeded,
    Stagnation,
    TaskFailure,
)
from emme.grid import Grid
from emme.matrix import Matrix, aligned_allocator, default_allocator
from emme.null_space import null_space
from emme.physics import PhysicsModel, PlasmaParameters, Stellarator, Tokamak
from emme.singularity import singularity_handler
from emme.solver import EigenvalueIterate, SecantDriver, SecantResult, SecantState, solve
from emme.thread_pool import DedicatedThreadPool

__version__ = "0.1.0"

__all__ = [
    "F", "assemble", "assemble_serial", "assemble_two_field",
    "ConfigError", "DimensionMismatch", "EmmeError", "InvalidArgument",
    "IterationLimitExceeded", "Stagnation", "TaskFailure",
    "Grid", "Matrix", "aligned_allocator", "default_allocator",
    "null_space",
    "PhysicsModel", "PlasmaParameters", "Stellarator", "Tokamak",
    "singularity_handler",
    "EigenvalueIterate", "SecantDriver", "SecantResult", "SecantState", "solve",
    "DedicatedThreadPool",
]
