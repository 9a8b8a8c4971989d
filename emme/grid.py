from dataclasses import dataclass, field

import numpy as np

from emme.errors import InvalidArgument


@dataclass(frozen=True)
class Grid:
    """
    Uniform 1D discretisation of the ballooning-angle domain.

    Attributes:
        length (float): Extent of the domain.
        npoints (int): Number of sample points.
        dx (float): Spacing, length / npoints.
        grid (np.ndarray): Read-only coordinates k*dx (+ offset), k = 0..npoints-1.
    """
    length: float
    npoints: int
    offset: float = 0.0
    dx: float = field(init=False)
    grid: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if int(self.npoints) != self.npoints or self.npoints <= 0:
            raise InvalidArgument(f"npoints must be a positive integer, got {self.npoints!r}")
        if not self.length > 0:
            raise InvalidArgument(f"length must be positive, got {self.length!r}")

        dx = self.length / self.npoints
        points = self.offset + dx * np.arange(self.npoints, dtype=np.float64)
        points.setflags(write=False)

        # frozen dataclass: derived fields have to go through object.__setattr__
        object.__setattr__(self, 'npoints', int(self.npoints))
        object.__setattr__(self, 'dx', dx)
        object.__setattr__(self, 'grid', points)

    @classmethod
    def centered(cls, length, npoints):
        """Same spacing, shifted to [-length/2, length/2)."""
        return cls(length, npoints, offset=-0.5 * length)

    def __len__(self):
        return self.npoints

    def __iter__(self):
        return iter(self.grid)
