"""
Error taxonomy for the eigenvalue search.

Validation problems (bad grids, non-square matrices, mismatched shapes) are
raised. Failures that happen while iterating (a kernel raising inside the
pool, a stagnating secant step, the iteration budget running out) are
reported through ``SecantResult`` and only raised on request.
"""


class EmmeError(Exception):
    """Base class for every error raised by emme."""


class InvalidArgument(EmmeError, ValueError):
    """An argument is outside the domain the operation accepts."""


class DimensionMismatch(EmmeError, ValueError):
    """Matrix and grid sizes disagree."""


class TaskFailure(EmmeError, RuntimeError):
    """A pooled kernel evaluation raised.

    The original exception is chained as ``__cause__``.
    """

    def __init__(self, message, cell=None):
        super().__init__(message)
        # (i, j) pair whose task failed, when known
        self.cell = cell


class Stagnation(EmmeError, ArithmeticError):
    """Two successive indicator values coincide (or stopped being finite)."""


class IterationLimitExceeded(EmmeError, RuntimeError):
    """The secant driver ran out of steps before meeting the tolerance."""


class ConfigError(InvalidArgument):
    """A run configuration could not be read or validated."""
