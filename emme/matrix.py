"""
Dense matrix container used by the assembly and the null-space step.

The buffer is a numpy array owned by the Matrix. Storage comes from an
allocator, ``allocator(shape, dtype) -> np.ndarray``, so hot loops can ask
for over-aligned memory without the rest of the code noticing.
"""
import numpy as np

from emme.errors import InvalidArgument


def default_allocator(shape, dtype):
    return np.zeros(shape, dtype=dtype)


def aligned_allocator(alignment=64):
    """
    Build an allocator returning zeroed arrays whose data pointer is a
    multiple of `alignment` bytes.

    Args:
        alignment: Required byte alignment (power of two).

    Returns:
        Callable (shape, dtype) -> np.ndarray
    """
    if alignment <= 0 or alignment & (alignment - 1):
        raise InvalidArgument(f"alignment must be a power of two, got {alignment}")

    def allocate(shape, dtype):
        dtype = np.dtype(dtype)
        nbytes = int(np.prod(shape)) * dtype.itemsize
        # Over-allocate raw bytes, then start the view at the first aligned address
        raw = np.zeros(nbytes + alignment, dtype=np.uint8)
        start = -raw.ctypes.data % alignment
        return raw[start:start + nbytes].view(dtype).reshape(shape)

    return allocate


class Matrix:
    """
    Rectangular, element-addressable matrix with fixed shape.

    Element access is ``m[i, j]``; slices are not part of the interface, use
    get_row / get_col / set_col for vector access.
    """

    def __init__(self, rows, cols, dtype=np.float64, allocator=default_allocator):
        if rows < 0 or cols < 0:
            raise InvalidArgument(f"Matrix dimensions must be non-negative, got ({rows}, {cols})")
        self._data = allocator((int(rows), int(cols)), dtype)

    @classmethod
    def from_array(cls, array, dtype=None, allocator=default_allocator):
        array = np.asarray(array, dtype=dtype)
        if array.ndim != 2:
            raise InvalidArgument(f"Expected a 2D array, got {array.ndim} dimensions")
        m = cls(array.shape[0], array.shape[1], dtype=array.dtype, allocator=allocator)
        m._data[...] = array
        return m

    @property
    def rows(self):
        return self._data.shape[0]

    @property
    def cols(self):
        return self._data.shape[1]

    @property
    def shape(self):
        return self._data.shape

    @property
    def dtype(self):
        return self._data.dtype

    def is_square(self):
        return self.rows == self.cols

    def __getitem__(self, index):
        i, j = index
        return self._data[i, j]

    def __setitem__(self, index, value):
        i, j = index
        self._data[i, j] = value

    def get_row(self, i):
        return self._data[i, :].copy()

    def get_col(self, j):
        return self._data[:, j].copy()

    def set_col(self, j, values):
        values = np.asarray(values)
        if values.shape != (self.rows,):
            raise InvalidArgument(f"Column must have {self.rows} entries, got shape {values.shape}")
        self._data[:, j] = values

    def to_array(self):
        return self._data.copy()

    def copy(self):
        return Matrix.from_array(self._data)

    def __deepcopy__(self, memo):
        return self.copy()

    def __copy__(self):
        # copies are always deep, there is no aliasing between matrices
        return self.copy()

    def __array__(self, dtype=None, copy=None):
        if dtype is None:
            return self._data.copy()
        return self._data.astype(dtype)

    def __matmul__(self, other):
        other = other._data if isinstance(other, Matrix) else np.asarray(other)
        result = self._data @ other
        if result.ndim == 2:
            return Matrix.from_array(result)
        return result

    def __eq__(self, other):
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self._data, other._data))

    __hash__ = None

    def __repr__(self):
        return f"Matrix(rows={self.rows}, cols={self.cols}, dtype={self.dtype})"
