import logging
from enum import Enum
from typing import Any, Callable, Sequence, Union, cast

import numpy as np

from .addressing import ALL, Region, resolve_region
from .backend.device import Device, default_device
from .errors import InvalidShapeError, RaggedInputError, ShapeMismatchError

logger = logging.getLogger(__name__)


class Axis(Enum):
    """Selects whether an operation works on row slices or column slices."""

    ROWS = "rows"
    COLUMNS = "columns"


class SortOrder(Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


Scalar = Union[int, float, np.integer, np.floating]


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(
        value, bool
    )


def _check_shape(shape: Any) -> tuple[int, int]:
    """Return ``shape`` as a pair of positive ints, else raise InvalidShapeError."""
    if not isinstance(shape, (tuple, list)) or len(shape) != 2:
        raise InvalidShapeError(f"Expected a (rows, columns) pair, got {shape!r}")
    for extent in shape:
        if isinstance(extent, bool) or not isinstance(extent, (int, np.integer)):
            raise InvalidShapeError(
                f"Rows and columns must be integers, got {type(extent).__name__}"
            )
    rows, columns = int(shape[0]), int(shape[1])
    if rows <= 0 or columns <= 0:
        raise InvalidShapeError(
            f"Rows and columns must be greater than 0, got {rows}x{columns}"
        )
    return rows, columns


def _is_row(value: Any) -> bool:
    return isinstance(value, (Sequence, np.ndarray)) and not isinstance(
        value, (str, bytes)
    )


def _nested_to_numpy(obj: Any) -> np.ndarray:
    """Convert a flat or nested sequence to a 1-D or 2-D float32 array."""
    rows = list(obj)
    if not rows:
        raise InvalidShapeError("Cannot build a matrix from an empty sequence")
    nested = [_is_row(r) for r in rows]
    if not any(nested):
        return np.asarray(rows, dtype=np.float32)
    if not all(nested):
        raise RaggedInputError("Cannot mix scalars and rows in matrix input")
    rows = [list(r) for r in rows]
    width = len(rows[0])
    for i, row in enumerate(rows):
        if len(row) != width:
            raise RaggedInputError(
                f"All rows must have the same number of columns: row 0 has "
                f"{width}, row {i} has {len(row)}"
            )
    return np.asarray(rows, dtype=np.float32)


class Matrix:
    """Dense two-dimensional float32 matrix stored row-major.

    Element ``(r, c)`` lives at offset ``r * columns + c`` of a compact buffer
    owned by the backend of ``device``. Every Matrix owns its buffer
    exclusively: reading a region copies it out, writing a region copies the
    new values in.

    Indexing takes a ``(row, column)`` pair of selectors (see
    :mod:`densemat.addressing`): two integers give a ``float``, anything else
    gives a new Matrix. ``*`` and ``/`` between matrices are elementwise; the
    matrix product is ``@``.
    """

    _rows: int
    _columns: int
    _device: Device
    _handle: Any

    # keep NumPy scalars on the left of an operator from claiming the operation
    __array_ufunc__ = None

    def __init__(self, other: Any, device: Device | None = None) -> None:
        """Construct a Matrix from another Matrix, a NumPy array, or a sequence.

        Parameters
        ----------
        other : Matrix | numpy.ndarray | sequence
            Source to copy from. A flat sequence or 1-D array becomes a single
            row; a nested sequence or 2-D array gives one row per entry.
        device : Device | None, optional
            Target device. If omitted and ``other`` is a Matrix, the other's
            device is used; otherwise the default device is used.

        Raises
        ------
        RaggedInputError
            If nested rows differ in length.
        InvalidShapeError
            If the input is empty or has more than two dimensions.
        """
        if isinstance(other, Matrix):
            # create a copy of existing Matrix
            if device is None:
                device = other.device
            self._init(other.to(device).copy())
        elif isinstance(other, np.ndarray):
            if other.ndim == 1:
                shape = (1, other.shape[0])
            elif other.ndim == 2:
                shape = (other.shape[0], other.shape[1])
            else:
                raise InvalidShapeError(
                    f"Matrices are two-dimensional, got an array of shape {other.shape}"
                )
            matrix = self.make(shape, device=device)
            matrix.device.from_numpy(other, matrix._handle)
            self._init(matrix)
        else:
            self._init(Matrix(_nested_to_numpy(other), device=device))

    def _init(self, other: "Matrix") -> None:
        """Take over shape, device and storage from ``other``."""
        self._rows = other._rows
        self._columns = other._columns
        self._device = other._device
        self._handle = other._handle

    @staticmethod
    def make(shape: tuple[int, int], device: Device | None = None) -> "Matrix":
        """Create a Matrix with the given shape and freshly allocated storage.

        Parameters
        ----------
        shape : tuple of int
            ``(rows, columns)``, both strictly positive integers.
        device : Device | None, optional
            Target device. Defaults to the default device.

        Raises
        ------
        InvalidShapeError
            If an extent is not a positive integer.
        """
        rows, columns = _check_shape(shape)
        matrix = Matrix.__new__(Matrix)
        matrix._rows = rows
        matrix._columns = columns
        matrix._device = device if device is not None else default_device()
        matrix._handle = matrix.device.Array(rows * columns)
        return matrix

    @classmethod
    def from_flat(
        cls, data: Any, rows: int, columns: int, device: Device | None = None
    ) -> "Matrix":
        """Build a ``rows x columns`` matrix from a flat row-major sequence."""
        rows, columns = _check_shape((rows, columns))
        array = np.asarray(data, dtype=np.float32)
        if array.ndim != 1 or array.size != rows * columns:
            raise InvalidShapeError(
                f"Expected {rows * columns} flat values for a {rows}x{columns} "
                f"matrix, got shape {array.shape}"
            )
        return cls(array.reshape(rows, columns), device=device)

    @classmethod
    def full(
        cls, rows: int, columns: int, value: Scalar, device: Device | None = None
    ) -> "Matrix":
        """Matrix of the given shape with every element set to ``value``."""
        matrix = cls.make((rows, columns), device=device)
        matrix.device.fill(matrix._handle, value)
        return matrix

    @classmethod
    def random(
        cls,
        rows: int,
        columns: int,
        low: float = 0.0,
        high: float = 1.0,
        closed: bool = False,
        rng: np.random.Generator | None = None,
        device: Device | None = None,
    ) -> "Matrix":
        """Matrix of uniform samples from ``[low, high)``, or ``[low, high]``.

        Parameters
        ----------
        rows, columns : int
            Shape of the result.
        low, high : float
            Bounds of the sampled range.
        closed : bool, optional
            Include ``high`` in the range. Defaults to a half-open range.
        rng : numpy.random.Generator | None, optional
            Source of randomness; a fresh generator is used when omitted.
        device : Device | None, optional
            Target device.

        Raises
        ------
        ValueError
            If the range is empty (``low > high``, or ``low == high`` for a
            half-open range).
        """
        if low > high or (low == high and not closed):
            bracket = "]" if closed else ")"
            raise ValueError(f"Empty sampling range [{low}, {high}{bracket}")
        matrix = cls.make((rows, columns), device=device)
        matrix.device.rand_uniform(matrix._handle, low, high, closed=closed, rng=rng)
        return matrix

    ### Properties and string representations
    @property
    def rows(self) -> int:
        return self._rows

    @property
    def columns(self) -> int:
        return self._columns

    @property
    def shape(self) -> tuple[int, int]:
        """tuple[int, int]: ``(rows, columns)``."""
        return (self._rows, self._columns)

    @property
    def strides(self) -> tuple[int, int]:
        """tuple[int, int]: Row-major strides in elements, ``(columns, 1)``."""
        return (self._columns, 1)

    @property
    def size(self) -> int:
        """int: Total number of elements, ``rows * columns``."""
        return self._rows * self._columns

    @property
    def device(self) -> Device:
        return self._device

    @property
    def dtype(self) -> str:
        return "float32"

    def __repr__(self) -> str:
        multirow = self.rows > 1
        lines = ["Matrix(" + ("[" if multirow else "")]
        for row in self.numpy():
            lines.append("    [" + ", ".join(str(x) for x in row) + "],")
        lines.append(("]" if multirow else "") + ")")
        return "\n".join(lines)

    __str__ = __repr__

    ### Conversion and copies
    def to(self, device: Device) -> "Matrix":
        """Return ``self`` if already on ``device``, else a copy on ``device``."""
        if self.device == device:
            return self
        else:
            return Matrix(self.numpy(), device)

    def numpy(self) -> np.ndarray:
        """Return a ``(rows, columns)`` float32 NumPy copy of the contents."""
        return cast(
            np.ndarray,
            self.device.to_numpy(self._handle, self.shape, self.strides, 0),
        ).copy()

    def tolist(self) -> list[list[float]]:
        return cast(list[list[float]], self.numpy().tolist())

    def copy(self) -> "Matrix":
        """Return an independent copy."""
        return cast(Matrix, self[ALL, ALL])

    def fill(self, value: Scalar) -> None:
        """Replace the contents with ``value`` everywhere, keeping the shape."""
        self._init(Matrix.full(self.rows, self.columns, value, device=self.device))

    ### Get and set elements
    def _read(self, region: Region) -> Union["Matrix", float]:
        if region.is_element:
            return float(
                self.device.to_numpy(self._handle, (1,), (1,), region.offset)[0]
            )
        out = Matrix.make(region.shape, device=self.device)
        self.device.compact(
            self._handle, out._handle, region.shape, region.strides, region.offset
        )
        return out

    def _write(self, region: Region, value: Union["Matrix", Scalar]) -> None:
        if isinstance(value, Matrix):
            if value.shape != region.shape:
                raise ShapeMismatchError(
                    f"Cannot assign a {value.rows}x{value.columns} matrix to a "
                    f"{region.rows}x{region.columns} region"
                )
            self.device.ewise_setitem(
                value.to(self.device)._handle,
                self._handle,
                region.shape,
                region.strides,
                region.offset,
            )
        elif _is_scalar(value):
            self.device.scalar_setitem(
                region.size,
                value,
                self._handle,
                region.shape,
                region.strides,
                region.offset,
            )
        else:
            raise TypeError(
                f"Cannot assign {type(value).__name__} to a matrix region"
            )
        logger.debug("Wrote %dx%d region at offset %d", *region.shape, region.offset)

    def __getitem__(self, idxs: Any) -> Union["Matrix", float]:
        """Read the element or region selected by a ``(row, column)`` pair.

        Parameters
        ----------
        idxs : tuple
            Row and column selectors: ints, unit-step slices, or
            :mod:`densemat.addressing` selectors.

        Returns
        -------
        float | Matrix
            A float for two integer indices; otherwise a new Matrix of the
            selected shape (a single index yields a row or column vector).

        Raises
        ------
        OutOfRangeError
            If a selector reaches outside the matrix or has ``lo > hi``.
        InvalidSelectorError
            If ``idxs`` is not a pair of supported selectors.
        """
        return self._read(resolve_region(idxs, self.shape))

    def __setitem__(self, idxs: Any, value: Union["Matrix", Scalar]) -> None:
        """Write into the element or region selected by ``idxs`` in place.

        A Matrix value must have exactly the region's shape; a scalar fills
        the region. Nothing is written if a check fails.

        Raises
        ------
        OutOfRangeError
            If a selector reaches outside the matrix.
        ShapeMismatchError
            If a Matrix value's shape differs from the region's.
        """
        self._write(resolve_region(idxs, self.shape), value)

    def read_region(self, rows: Any, columns: Any) -> Union["Matrix", float]:
        """Same as ``self[rows, columns]``."""
        return self[rows, columns]

    def write_region(
        self, rows: Any, columns: Any, value: Union["Matrix", Scalar]
    ) -> None:
        """Same as ``self[rows, columns] = value``."""
        self[rows, columns] = value

    ### Element-wise and scalar operations
    def ewise_or_scalar(
        self,
        other: Union["Matrix", Scalar],
        ewise_func: Callable[[Any, Any, Any], None],
        scalar_func: Callable[[Any, Any, Any], None],
    ) -> "Matrix":
        """Apply an elementwise or scalar backend function depending on ``other``.

        Raises
        ------
        ShapeMismatchError
            If ``other`` is a Matrix of a different shape.
        TypeError
            If ``other`` is neither a Matrix nor a real scalar.
        """
        if isinstance(other, Matrix):
            if self.shape != other.shape:
                raise ShapeMismatchError(
                    f"Operation needs two equal-shaped matrices, got "
                    f"{self.rows}x{self.columns} and {other.rows}x{other.columns}"
                )
            out = Matrix.make(self.shape, device=self.device)
            ewise_func(self._handle, other.to(self.device)._handle, out._handle)
        elif _is_scalar(other):
            out = Matrix.make(self.shape, device=self.device)
            scalar_func(self._handle, other, out._handle)
        else:
            raise TypeError(
                f"Unsupported operand type for matrix arithmetic: "
                f"{type(other).__name__}"
            )
        return out

    def add(self, other: Union["Matrix", Scalar]) -> "Matrix":
        return self.ewise_or_scalar(
            other, self.device.ewise_add, self.device.scalar_add
        )

    def subtract(self, other: Union["Matrix", Scalar]) -> "Matrix":
        if isinstance(other, Matrix):
            return self.add(other.multiply(-1))
        return self.add(-1 * other)

    def multiply(self, other: Union["Matrix", Scalar]) -> "Matrix":
        """Elementwise (Hadamard) product, or scaling by a scalar."""
        return self.ewise_or_scalar(
            other, self.device.ewise_mul, self.device.scalar_mul
        )

    def divide(self, other: Union["Matrix", Scalar]) -> "Matrix":
        return self.ewise_or_scalar(
            other, self.device.ewise_div, self.device.scalar_div
        )

    def __add__(self, other: Union["Matrix", Scalar]) -> "Matrix":
        """Elementwise addition."""
        if not (isinstance(other, Matrix) or _is_scalar(other)):
            return NotImplemented
        return self.add(other)

    __radd__ = __add__

    def __sub__(self, other: Union["Matrix", Scalar]) -> "Matrix":
        """Elementwise subtraction."""
        if not (isinstance(other, Matrix) or _is_scalar(other)):
            return NotImplemented
        return self.subtract(other)

    def __rsub__(self, other: Scalar) -> "Matrix":
        """Elementwise reverse subtraction, ``other - element``."""
        if not _is_scalar(other):
            return NotImplemented
        return (-self).add(other)

    def __mul__(self, other: Union["Matrix", Scalar]) -> "Matrix":
        """Elementwise multiplication."""
        if not (isinstance(other, Matrix) or _is_scalar(other)):
            return NotImplemented
        return self.multiply(other)

    __rmul__ = __mul__

    def __truediv__(self, other: Union["Matrix", Scalar]) -> "Matrix":
        """Elementwise true division."""
        if not (isinstance(other, Matrix) or _is_scalar(other)):
            return NotImplemented
        return self.divide(other)

    def __rtruediv__(self, other: Scalar) -> "Matrix":
        """Elementwise reverse division, ``other / element``."""
        if not _is_scalar(other):
            return NotImplemented
        return self.ewise_or_scalar(
            other, self.device.ewise_div, self.device.scalar_rdiv
        )

    def __neg__(self) -> "Matrix":
        """Elementwise negation."""
        return self.multiply(-1)

    # compound forms rebind the receiver to the result, like ``a = a + b``
    def __iadd__(self, other: Union["Matrix", Scalar]) -> "Matrix":
        if not (isinstance(other, Matrix) or _is_scalar(other)):
            return NotImplemented
        self._init(self.add(other))
        return self

    def __isub__(self, other: Union["Matrix", Scalar]) -> "Matrix":
        if not (isinstance(other, Matrix) or _is_scalar(other)):
            return NotImplemented
        self._init(self.subtract(other))
        return self

    def __imul__(self, other: Union["Matrix", Scalar]) -> "Matrix":
        if not (isinstance(other, Matrix) or _is_scalar(other)):
            return NotImplemented
        self._init(self.multiply(other))
        return self

    def __itruediv__(self, other: Union["Matrix", Scalar]) -> "Matrix":
        if not (isinstance(other, Matrix) or _is_scalar(other)):
            return NotImplemented
        self._init(self.divide(other))
        return self

    ### Equality
    def __eq__(self, other: object) -> bool:
        """Same shape and identical elements at every position."""
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.shape == other.shape and self.device.array_equal(
            self._handle, other.to(self.device)._handle
        )

    __hash__ = None  # type: ignore[assignment]

    ### Matrix multiplication
    def matmul(self, other: "Matrix") -> "Matrix":
        """Matrix product of ``(m, n)`` and ``(n, p)`` operands, shape ``(m, p)``.

        Raises
        ------
        ShapeMismatchError
            If ``self.columns != other.rows``.
        """
        if not isinstance(other, Matrix):
            raise TypeError(
                f"Matrix product needs a Matrix operand, got {type(other).__name__}"
            )
        if self.columns != other.rows:
            raise ShapeMismatchError(
                f"Inner dimensions differ: {self.rows}x{self.columns} @ "
                f"{other.rows}x{other.columns}"
            )

        m, n, p = self.rows, self.columns, other.columns
        logger.debug("matmul (%d, %d) @ (%d, %d) on %s", m, n, n, p, self.device)
        out = Matrix.make((m, p), device=self.device)
        self.device.matmul(
            self._handle, other.to(self.device)._handle, out._handle, m, n, p
        )
        return out

    def __matmul__(self, other: "Matrix") -> "Matrix":
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.matmul(other)

    def __imatmul__(self, other: "Matrix") -> "Matrix":
        if not isinstance(other, Matrix):
            return NotImplemented
        self._init(self.matmul(other))
        return self

    ### Reductions
    def _axis_slices(self, axis: Axis | str) -> list["Matrix"]:
        """Full-width row slices for ``ROWS``, full-height column slices for ``COLUMNS``."""
        if Axis(axis) is Axis.ROWS:
            return [cast(Matrix, self[r, ALL]) for r in range(self.rows)]
        return [cast(Matrix, self[ALL, c]) for c in range(self.columns)]

    def sum(self, axis: Axis | str | None = None) -> Union[float, "Matrix"]:
        """Sum of all elements, or per row/column sums.

        Parameters
        ----------
        axis : Axis | str | None, optional
            ``None`` sums everything and returns a float. ``Axis.ROWS`` returns
            a ``1 x rows`` matrix of row totals, ``Axis.COLUMNS`` a
            ``1 x columns`` matrix of column totals.
        """
        if axis is None:
            out = Matrix.make((1, 1), device=self.device)
            self.device.reduce_sum(self._handle, out._handle, self.size)
            return cast(float, out[0, 0])
        totals = [s.sum() for s in self._axis_slices(axis)]
        return Matrix(totals, device=self.device)

    def argmax(self, axis: Axis | str) -> list[int]:
        """Index of the largest value within each row or column (first on ties)."""
        return [self.device.argmax(s._handle) for s in self._axis_slices(axis)]

    def argmin(self, axis: Axis | str) -> list[int]:
        """Index of the smallest value within each row or column (first on ties)."""
        return [self.device.argmin(s._handle) for s in self._axis_slices(axis)]

    def count_zeros(self) -> int:
        return self.device.count_zeros(self._handle)

    def count_nonzeros(self) -> int:
        return self.size - self.count_zeros()

    ### Transformations
    @staticmethod
    def _stack_rows(rows: list["Matrix"], device: Device) -> "Matrix":
        """Stack single-row matrices of equal width into one matrix."""
        out = Matrix.make((len(rows), rows[0].columns), device=device)
        for i, row in enumerate(rows):
            out[i, ALL] = row
        return out

    def flatten(self) -> "Matrix":
        """Copy of the contents as a single ``1 x size`` row, in row-major order."""
        out = Matrix.make((1, self.size), device=self.device)
        self.device.compact(self._handle, out._handle, (self.size,), (1,), 0)
        return out

    def transposed(self) -> "Matrix":
        """Matrix with swapped extents, ``result[j, i] == self[i, j]``."""
        shape = (self.columns, self.rows)
        out = Matrix.make(shape, device=self.device)
        # read through the permuted strides of the source
        self.device.compact(self._handle, out._handle, shape, (1, self.columns), 0)
        return out

    def diagonal(self) -> "Matrix":
        """Elements ``self[k, k]`` as a single row."""
        n = min(self.rows, self.columns)
        return Matrix([self[k, k] for k in range(n)], device=self.device)

    def reversed(self) -> "Matrix":
        """Reverse the linear element order; the shape is unchanged."""
        out = Matrix.make(self.shape, device=self.device)
        self.device.reverse(self._handle, out._handle)
        return out

    def flip(self, axis: Axis | str) -> "Matrix":
        """Reverse the order of rows (``ROWS``) or of columns (``COLUMNS``)."""
        if Axis(axis) is Axis.ROWS:
            return self.reversed().flip(Axis.COLUMNS)
        rows = [s.reversed() for s in self._axis_slices(Axis.ROWS)]
        return Matrix._stack_rows(rows, self.device)

    def _sorted_buffer(self, descending: bool) -> "Matrix":
        out = Matrix.make(self.shape, device=self.device)
        self.device.sort(self._handle, out._handle, descending=descending)
        return out

    def sorted(
        self, axis: Axis | str, order: SortOrder | str = SortOrder.ASCENDING
    ) -> "Matrix":
        """Sort every row (``ROWS``) or every column (``COLUMNS``) independently.

        Sorting columns decouples rows: afterwards row ``i`` holds the
        ``i``-th value of each column, not an original row.
        """
        descending = SortOrder(order) is SortOrder.DESCENDING
        if Axis(axis) is Axis.ROWS:
            rows = [s._sorted_buffer(descending) for s in self._axis_slices(Axis.ROWS)]
            return Matrix._stack_rows(rows, self.device)

        # sorted columns are laid out as rows of a (columns, rows) matrix,
        # the transpose puts them back in place
        columns = [
            s._sorted_buffer(descending).flatten()
            for s in self._axis_slices(Axis.COLUMNS)
        ]
        return Matrix._stack_rows(columns, self.device).transposed()


def matrix(a: Any, device: Device | None = None) -> Matrix:
    """Convenience constructor mirroring ``numpy.array``."""
    return Matrix(a, device=device)
