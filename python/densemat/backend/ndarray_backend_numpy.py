import numpy as np

__device_name__ = "numpy"
_dtype = np.float32
_dtype_size = np.dtype(_dtype).itemsize


class Array:
    def __init__(self, size: int):
        # use numpy array as buffer to store the data
        self.buffer = np.empty(size, dtype=_dtype)

    @property
    def size(self) -> int:
        return self.buffer.size

    def ptr(self) -> int:
        return self.buffer.ctypes.data


def to_numpy(
    a: Array, shape: tuple[int, ...], strides: tuple[int, ...], offset: int
) -> np.ndarray:
    """Create a NumPy view into ``a.buffer`` with custom shape/strides and offset.

    Parameters
    ----------
    a : Array
        Source storage.
    shape : tuple of int
        Desired shape of the returned view.
    strides : tuple of int
        Strides expressed in number of elements (not bytes).
    offset : int
        Starting element offset into ``a.buffer``.

    Returns
    -------
    numpy.ndarray
        A view (no copy) that shares memory with ``a.buffer``.
    """
    return np.lib.stride_tricks.as_strided(
        a.buffer[offset:],
        shape,
        tuple(s * _dtype_size for s in strides),
    )


def from_numpy(numpy_array: np.ndarray, out: Array) -> None:
    """Copy values from a NumPy array into ``out.buffer`` in row-major order.

    Values are cast to float32.
    """
    out.buffer[:] = np.asarray(numpy_array, dtype=_dtype).flat


def fill(out: Array, val: float) -> None:
    """Fill the entire ``out.buffer`` with a scalar value."""
    out.buffer.fill(val)


def compact(
    a: Array, out: Array, shape: tuple[int, ...], strides: tuple[int, ...], offset: int
) -> None:
    """Gather a strided view of ``a`` into the compact buffer ``out``.

    Parameters
    ----------
    a : Array
        Source storage.
    out : Array
        Destination storage that will receive the compact data.
    shape : tuple of int
        Shape of the logical view into ``a``.
    strides : tuple of int
        Strides of the logical view into ``a`` in elements.
    offset : int
        Starting element offset into ``a.buffer`` for the view.
    """
    out.buffer[:] = to_numpy(a, shape, strides, offset).flatten()


def ewise_setitem(
    a: Array, out: Array, shape: tuple[int, ...], strides: tuple[int, ...], offset: int
) -> None:
    """Scatter compact ``a`` into a strided view of ``out``.

    Parameters
    ----------
    a : Array
        Source storage. Expected to be compact and of size ``prod(shape)``.
    out : Array
        Destination storage, addressed through ``shape``/``strides``/``offset``.
    shape : tuple of int
        Logical shape of the output view.
    strides : tuple of int
        Output view strides in elements.
    offset : int
        Starting element offset into ``out.buffer`` for the view.
    """
    to_numpy(out, shape, strides, offset)[:] = a.buffer.reshape(shape)


def scalar_setitem(
    size: int,
    val: float,
    out: Array,
    shape: tuple[int, ...],
    strides: tuple[int, ...],
    offset: int,
) -> None:
    """Set every element of a strided view of ``out`` to ``val``.

    ``size`` is the number of addressed elements; unused here.
    """
    to_numpy(out, shape, strides, offset)[:] = val


def ewise_add(a: Array, b: Array, out: Array) -> None:
    """Elementwise addition ``out = a + b`` for compact buffers."""
    out.buffer[:] = a.buffer + b.buffer


def scalar_add(a: Array, val: float, out: Array) -> None:
    """Elementwise addition with scalar ``out = a + val``."""
    out.buffer[:] = a.buffer + _dtype(val)


def ewise_mul(a: Array, b: Array, out: Array) -> None:
    """Elementwise multiplication ``out = a * b`` for compact buffers."""
    out.buffer[:] = a.buffer * b.buffer


def scalar_mul(a: Array, val: float, out: Array) -> None:
    """Elementwise multiplication with scalar ``out = a * val``."""
    out.buffer[:] = a.buffer * _dtype(val)


def ewise_div(a: Array, b: Array, out: Array) -> None:
    """Elementwise division ``out = a / b`` for compact buffers.

    Division by zero yields ``inf``/``nan`` without a warning.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        out.buffer[:] = a.buffer / b.buffer


def scalar_div(a: Array, val: float, out: Array) -> None:
    """Elementwise division by a scalar ``out = a / val``."""
    with np.errstate(divide="ignore", invalid="ignore"):
        out.buffer[:] = a.buffer / _dtype(val)


def scalar_rdiv(a: Array, val: float, out: Array) -> None:
    """Elementwise division of a scalar ``out = val / a``."""
    with np.errstate(divide="ignore", invalid="ignore"):
        out.buffer[:] = _dtype(val) / a.buffer


def matmul(a: Array, b: Array, out: Array, m: int, n: int, p: int) -> None:
    """Matrix multiplication ``out = (A @ B).ravel()`` with compact buffers.

    Parameters
    ----------
    a : Array
        Left matrix storage containing ``A`` flattened with shape ``(m, n)``.
    b : Array
        Right matrix storage containing ``B`` flattened with shape ``(n, p)``.
    out : Array
        Output storage for ``C = A @ B`` flattened with shape ``(m * p,)``.
    m : int
        Number of rows of ``A`` and ``C``.
    n : int
        Shared inner dimension of ``A`` and ``B``.
    p : int
        Number of columns of ``B`` and ``C``.
    """
    out.buffer[:] = (a.buffer.reshape(m, n) @ b.buffer.reshape(n, p)).reshape(-1)


def reduce_sum(a: Array, out: Array, reduce_size: int) -> None:
    """Reduce consecutive groups of ``reduce_size`` elements by sum.

    Parameters
    ----------
    a : Array
        Input (compact), conceptually reshaped to ``(-1, reduce_size)``.
    out : Array
        Output (compact) receiving one sum per group.
    reduce_size : int
        Size of each group.
    """
    out.buffer[:] = np.sum(a.buffer.reshape(-1, reduce_size), axis=1)


def argmax(a: Array) -> int:
    """Index of the first maximum of ``a``."""
    return int(np.argmax(a.buffer))


def argmin(a: Array) -> int:
    """Index of the first minimum of ``a``."""
    return int(np.argmin(a.buffer))


def sort(a: Array, out: Array, descending: bool = False) -> None:
    """Sort ``a`` into ``out``, ascending unless ``descending`` is set."""
    ordered = np.sort(a.buffer)
    out.buffer[:] = ordered[::-1] if descending else ordered


def reverse(a: Array, out: Array) -> None:
    """Reverse the linear order of ``a`` into ``out``."""
    out.buffer[:] = a.buffer[::-1]


def count_zeros(a: Array) -> int:
    """Number of elements exactly equal to zero."""
    return int(np.count_nonzero(a.buffer == 0))


def array_equal(a: Array, b: Array) -> bool:
    """Whether two buffers hold identical values at every position."""
    return bool(np.array_equal(a.buffer, b.buffer))


def rand_uniform(
    out: Array,
    low: float,
    high: float,
    closed: bool = False,
    rng: np.random.Generator | None = None,
) -> None:
    """Fill ``out`` with uniform samples from ``[low, high)`` or ``[low, high]``.

    The closed variant draws up to the next float32 above ``high`` and clips,
    so ``high`` itself can be produced.
    """
    rng = np.random.default_rng() if rng is None else rng
    upper = np.nextafter(_dtype(high), _dtype(np.inf)) if closed else high
    samples = rng.uniform(low, upper, size=out.size).astype(_dtype)
    if closed:
        np.clip(samples, low, high, out=samples)
    else:
        # float64 -> float32 rounding can land exactly on ``high``
        np.minimum(samples, np.nextafter(_dtype(high), _dtype(low)), out=samples)
    out.buffer[:] = samples
