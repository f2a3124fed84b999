from typing import Any, Callable

import numpy as np
import pytest
from densemat import ALL, From, Matrix, Span, Through
from densemat.backend import device as backend_device
from densemat.errors import (
    InvalidSelectorError,
    InvalidShapeError,
    OutOfRangeError,
    RaggedInputError,
    ShapeMismatchError,
)

_DEVICES = [backend_device.cpu_numpy()]
_DEVICE_IDS = ["numpy"]


def randn(*shape: int) -> np.ndarray:
    return np.random.randn(*shape).astype(np.float32)


### Construction


@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_from_flat_sequence(device: backend_device.Device) -> None:
    A = Matrix([1, 2, 3], device=device)
    assert A.shape == (1, 3)
    assert A.rows == 1 and A.columns == 3
    assert A.size == 3
    assert A.dtype == "float32"
    assert A.tolist() == [[1.0, 2.0, 3.0]]


@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_from_nested_sequence(device: backend_device.Device) -> None:
    A = Matrix([[1, 2, 3], [4, 5, 6]], device=device)
    assert A.shape == (2, 3)
    np.testing.assert_array_equal(A.numpy(), [[1, 2, 3], [4, 5, 6]])
    # row-major layout
    np.testing.assert_array_equal(A._handle.buffer, [1, 2, 3, 4, 5, 6])


@pytest.mark.parametrize("shape", [(7,), (1, 1), (3, 4), (6, 2)])
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_from_numpy(shape: tuple[int, ...], device: backend_device.Device) -> None:
    _A = randn(*shape)
    A = Matrix(_A, device=device)
    expected = _A.reshape(1, -1) if len(shape) == 1 else _A
    assert A.shape == expected.shape
    np.testing.assert_array_equal(A.numpy(), expected)


@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_copy_is_independent(device: backend_device.Device) -> None:
    A = Matrix([[1, 2], [3, 4]], device=device)
    for B in (Matrix(A), A.copy()):
        assert B == A
        assert B._handle.ptr() != A._handle.ptr()
        B[0, 0] = 10
        assert A[0, 0] == 1.0


@pytest.mark.parametrize(
    "data",
    [[[1, 2], [3]], [[1, 2, 3], [4, 5], [6, 7, 8]], [[1, 2], 3]],
    ids=["short_second", "short_middle", "mixed"],
)
def test_ragged_input(data: Any) -> None:
    with pytest.raises(RaggedInputError):
        Matrix(data)


@pytest.mark.parametrize(
    "data",
    [[], [[], []], np.zeros((0,)), np.zeros((2, 0)), np.zeros((2, 2, 2))],
    ids=["empty", "empty_rows", "empty_1d", "zero_columns", "3d"],
)
def test_invalid_input_shape(data: Any) -> None:
    with pytest.raises(InvalidShapeError):
        Matrix(data)


@pytest.mark.parametrize(
    "shape", [(0, 3), (3, 0), (0, 0), (-1, 2), (2.5, 3), (3, 2.0), (True, 2)]
)
def test_zero_extents_rejected(shape: tuple[Any, Any]) -> None:
    with pytest.raises(InvalidShapeError):
        Matrix.make(shape)
    with pytest.raises(InvalidShapeError):
        Matrix.full(shape[0], shape[1], 1.0)
    with pytest.raises(InvalidShapeError):
        Matrix.random(shape[0], shape[1])


def test_numpy_integer_extents() -> None:
    A = Matrix.make((np.int64(2), np.int32(3)))
    assert A.shape == (2, 3)
    assert all(type(extent) is int for extent in A.shape)


def test_make_always_allocates() -> None:
    A = Matrix.make((2, 3))
    B = Matrix.make((2, 3))
    assert A._handle.ptr() != B._handle.ptr()
    with pytest.raises(TypeError):
        Matrix.make((2, 3), handle=A._handle)  # type: ignore[call-arg]


def test_from_flat() -> None:
    A = Matrix.from_flat([1, 2, 3, 4, 5, 6], 3, 2)
    np.testing.assert_array_equal(A.numpy(), [[1, 2], [3, 4], [5, 6]])
    with pytest.raises(InvalidShapeError):
        Matrix.from_flat([1, 2, 3], 2, 2)
    # both extents negative: the product matches the length
    with pytest.raises(InvalidShapeError):
        Matrix.from_flat([1.0, 2.0], -1, -2)
    with pytest.raises(InvalidShapeError):
        Matrix.from_flat([1.0, 2.0], 1.0, 2)


def test_full() -> None:
    A = Matrix.full(2, 3, 7.5)
    np.testing.assert_array_equal(A.numpy(), np.full((2, 3), 7.5))


@pytest.mark.parametrize("closed", [False, True], ids=["half_open", "closed"])
def test_random_in_range(closed: bool) -> None:
    A = Matrix.random(20, 30, low=-2.0, high=3.0, closed=closed)
    values = A.numpy()
    assert values.min() >= -2.0
    assert values.max() <= 3.0 if closed else values.max() < 3.0


### Element access


@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_element_round_trip(device: backend_device.Device) -> None:
    A = Matrix.full(3, 4, 0.0, device=device)
    for r in range(3):
        for c in range(4):
            A[r, c] = r * 10 + c
            assert A[r, c] == r * 10 + c
    np.testing.assert_array_equal(
        A.numpy(), np.arange(4)[None, :] + 10 * np.arange(3)[:, None]
    )


def test_element_read_is_float() -> None:
    A = Matrix([[1.5, 2.5]])
    assert isinstance(A[0, 1], float)
    assert A[0, 1] == 2.5


@pytest.mark.parametrize(
    "idxs",
    [
        (4, 0),
        (0, 6),
        (-1, 0),
        (0, -1),
        (Span(3, 4), 0),
        (Span(2, 1), 0),
        (0, Through(6)),
        (From(4), 0),
        (slice(2, 2), 0),
        (slice(1, 5), Span(0, 6)),
    ],
)
def test_out_of_range(idxs: tuple[Any, Any]) -> None:
    A = Matrix(randn(4, 6))
    before = A.numpy()
    with pytest.raises(OutOfRangeError):
        A[idxs]
    with pytest.raises(OutOfRangeError):
        A[idxs] = 1.0
    np.testing.assert_array_equal(A.numpy(), before)


def test_invalid_selectors() -> None:
    A = Matrix(randn(3, 3))
    with pytest.raises(InvalidSelectorError):
        A[1]
    with pytest.raises(InvalidSelectorError):
        A[0:3:2, 0]
    with pytest.raises(InvalidSelectorError):
        A[0.0, 1]


### Slicing

getitem_params = [
    {"nd": (Span(1, 3), 2), "np": np.s_[1:4, 2:3]},
    {"nd": (From(2), 4), "np": np.s_[2:, 4:5]},
    {"nd": (Through(2), 0), "np": np.s_[:3, 0:1]},
    {"nd": (ALL, 5), "np": np.s_[:, 5:6]},
    {"nd": (3, Span(1, 4)), "np": np.s_[3:4, 1:5]},
    {"nd": (0, From(3)), "np": np.s_[0:1, 3:]},
    {"nd": (4, Through(1)), "np": np.s_[4:5, :2]},
    {"nd": (Span(1, 3), Span(2, 4)), "np": np.s_[1:4, 2:5]},
    {"nd": (From(1), From(2)), "np": np.s_[1:, 2:]},
    {"nd": (From(1), Through(2)), "np": np.s_[1:, :3]},
    {"nd": (Through(3), From(4)), "np": np.s_[:4, 4:]},
    {"nd": (Through(0), Through(0)), "np": np.s_[:1, :1]},
    {"nd": (slice(1, 4), slice(None, 2)), "np": np.s_[1:4, :2]},
    {"nd": (ALL, ALL), "np": np.s_[:, :]},
]
getitem_ids = [
    "rows_column",
    "from_column",
    "through_column",
    "all_column",
    "row_columns",
    "row_from",
    "row_through",
    "rows_columns",
    "from_from",
    "from_through",
    "through_from",
    "through_through",
    "python_slices",
    "all_all",
]


@pytest.mark.parametrize("params", getitem_params, ids=getitem_ids)
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_getitem(params: dict[str, Any], device: backend_device.Device) -> None:
    _A = randn(5, 6)
    A = Matrix(_A, device=device)
    lhs = A[params["nd"]]
    rhs = _A[params["np"]]
    assert isinstance(lhs, Matrix)
    assert lhs.shape == rhs.shape
    np.testing.assert_array_equal(lhs.numpy(), rhs)
    assert lhs._handle.ptr() != A._handle.ptr()


@pytest.mark.parametrize("params", getitem_params, ids=getitem_ids)
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_setitem_ewise(params: dict[str, Any], device: backend_device.Device) -> None:
    _A = randn(5, 6)
    A = Matrix(_A, device=device)
    _B = randn(*_A[params["np"]].shape)
    start_ptr = A._handle.ptr()
    A[params["nd"]] = Matrix(_B, device=device)
    _A[params["np"]] = _B
    end_ptr = A._handle.ptr()
    assert start_ptr == end_ptr, "region writes must modify in place"
    np.testing.assert_array_equal(A.numpy(), _A)


@pytest.mark.parametrize("params", getitem_params, ids=getitem_ids)
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_setitem_scalar(params: dict[str, Any], device: backend_device.Device) -> None:
    _A = randn(5, 6)
    A = Matrix(_A, device=device)
    A[params["nd"]] = 4.0
    _A[params["np"]] = 4.0
    np.testing.assert_array_equal(A.numpy(), _A)


@pytest.mark.parametrize("params", getitem_params, ids=getitem_ids)
def test_slice_round_trip(params: dict[str, Any]) -> None:
    A = Matrix(randn(5, 6))
    before = A.copy()
    A[params["nd"]] = A[params["nd"]]
    assert A == before


def test_read_is_detached_copy() -> None:
    A = Matrix([[1, 2, 3], [4, 5, 6]])
    row = A[1, ALL]
    row[0, 0] = 100
    assert A[1, 0] == 4.0


@pytest.mark.parametrize(
    "idxs,value_shape",
    [
        ((Span(0, 2), 1), (1, 3)),
        ((Span(0, 2), 1), (2, 1)),
        ((1, Span(0, 2)), (3, 1)),
        ((1, Span(0, 2)), (1, 2)),
        ((Span(0, 1), Span(0, 2)), (3, 2)),
        ((Span(0, 1), Span(0, 2)), (2, 2)),
        ((0, 0), (1, 2)),
    ],
    ids=[
        "column_given_row",
        "column_too_short",
        "row_given_column",
        "row_too_short",
        "block_transposed",
        "block_narrow",
        "element_given_row",
    ],
)
def test_setitem_shape_mismatch(
    idxs: tuple[Any, Any], value_shape: tuple[int, int]
) -> None:
    A = Matrix(randn(4, 4))
    before = A.copy()
    with pytest.raises(ShapeMismatchError):
        A[idxs] = Matrix.full(*value_shape, 9.0)
    assert A == before


def test_setitem_rejects_non_numeric() -> None:
    A = Matrix(randn(2, 2))
    with pytest.raises(TypeError):
        A[0, ALL] = "abc"


def test_compound_assignment_on_region() -> None:
    A = Matrix([[1, 2, 3], [4, 5, 6], [7, 8, 9], [10, 11, 12]])
    A[Span(1, 3), Span(1, 2)] *= 2
    assert A == Matrix([[1, 2, 3], [4, 10, 12], [7, 16, 18], [10, 22, 24]])

    B = Matrix([[1, 2, 3], [4, 5, 6], [7, 8, 9], [10, 11, 12]])
    B[1:4, 1:3] *= 2
    assert B == A


def test_region_methods() -> None:
    A = Matrix([[1, 2, 3], [4, 5, 6]])
    assert A.read_region(1, From(1)) == Matrix([[5, 6]])
    A.write_region(ALL, 0, Matrix([[7], [8]]))
    assert A == Matrix([[7, 2, 3], [8, 5, 6]])


### Arithmetic

OPS = {
    "multiply": lambda a, b: a * b,
    "divide": lambda a, b: a / b,
    "add": lambda a, b: a + b,
    "subtract": lambda a, b: a - b,
}
OP_FNS = [OPS[k] for k in OPS]
OP_NAMES = list(OPS)

ewise_shapes = [(1, 1), (4, 5), (1, 7), (6, 1)]


@pytest.mark.parametrize("fn", OP_FNS, ids=OP_NAMES)
@pytest.mark.parametrize("shape", ewise_shapes)
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_ewise_fn(
    fn: Callable[[Any, Any], Any],
    shape: tuple[int, int],
    device: backend_device.Device,
) -> None:
    _A = randn(*shape)
    _B = randn(*shape)
    A = Matrix(_A, device=device)
    B = Matrix(_B, device=device)
    np.testing.assert_allclose(fn(A, B).numpy(), fn(_A, _B), atol=1e-5, rtol=1e-5)


@pytest.mark.parametrize("fn", OP_FNS, ids=OP_NAMES)
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_scalar_fn(fn: Callable[[Any, Any], Any], device: backend_device.Device) -> None:
    _A = randn(5, 5)
    A = Matrix(_A, device=device)
    np.testing.assert_allclose(fn(A, 2.5).numpy(), fn(_A, 2.5), atol=1e-5, rtol=1e-5)
    np.testing.assert_allclose(fn(A, 3).numpy(), fn(_A, 3), atol=1e-5, rtol=1e-5)


@pytest.mark.parametrize("fn", OP_FNS, ids=OP_NAMES)
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_reflected_scalar_fn(
    fn: Callable[[Any, Any], Any], device: backend_device.Device
) -> None:
    _A = randn(5, 5) + np.float32(10.0)
    A = Matrix(_A, device=device)
    np.testing.assert_allclose(fn(2.5, A).numpy(), fn(2.5, _A), atol=1e-5, rtol=1e-5)
    np.testing.assert_allclose(
        fn(np.float32(2.5), A).numpy(), fn(2.5, _A), atol=1e-5, rtol=1e-5
    )


def test_scalar_minus_matrix() -> None:
    A = Matrix([[1, 2], [3, 4]])
    assert 10 - A == Matrix([[9, 8], [7, 6]])
    assert A - 1 == Matrix([[0, 1], [2, 3]])
    assert -A == Matrix([[-1, -2], [-3, -4]])


def test_named_operations() -> None:
    A = Matrix([[2, 4], [6, 8]])
    B = Matrix([[1, 2], [3, 4]])
    assert A.add(B) == A + B
    assert A.subtract(B) == B
    assert A.multiply(B) == Matrix([[2, 8], [18, 32]])
    assert A.divide(B) == Matrix.full(2, 2, 2.0)
    assert A.divide(2) == B


def test_division_by_zero() -> None:
    A = Matrix([[1, -1, 0]])
    with np.errstate(all="raise"):
        out = (A / 0).numpy()
    assert out[0, 0] == np.inf and out[0, 1] == -np.inf and np.isnan(out[0, 2])


@pytest.mark.parametrize("fn", OP_FNS, ids=OP_NAMES)
@pytest.mark.parametrize(
    "lhs_shape,rhs_shape",
    [((2, 3), (3, 2)), ((2, 3), (2, 2)), ((1, 4), (4, 1)), ((3, 3), (1, 3))],
)
def test_ewise_shape_mismatch(
    fn: Callable[[Any, Any], Any],
    lhs_shape: tuple[int, int],
    rhs_shape: tuple[int, int],
) -> None:
    A = Matrix(randn(*lhs_shape))
    B = Matrix(randn(*rhs_shape))
    with pytest.raises(ShapeMismatchError):
        fn(A, B)


@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_compound_operators(device: backend_device.Device) -> None:
    _A = randn(3, 4)
    _B = randn(3, 4) + np.float32(5.0)
    A = Matrix(_A, device=device)
    B = Matrix(_B, device=device)

    A += B
    _A += _B
    A -= 1.5
    _A -= 1.5
    A *= B
    _A *= _B
    A /= 2
    _A /= 2
    A /= B
    _A /= _B
    np.testing.assert_allclose(A.numpy(), _A, atol=1e-5, rtol=1e-5)

    with pytest.raises(ShapeMismatchError):
        A += Matrix(randn(4, 3))


def test_unsupported_operand() -> None:
    A = Matrix([[1, 2]])
    with pytest.raises(TypeError):
        A + "1"  # type: ignore[operator]
    with pytest.raises(TypeError):
        A * [1, 2]  # type: ignore[operator]
    with pytest.raises(TypeError):
        A.add(None)  # type: ignore[arg-type]


def test_fill() -> None:
    A = Matrix(randn(3, 2))
    A.fill(1.25)
    assert A == Matrix.full(3, 2, 1.25)


### Matrix multiplication

matmul_dims = [
    (1, 1, 1),
    (1, 2, 3),
    (2, 3, 2),
    (3, 4, 5),
    (5, 4, 3),
    (16, 16, 16),
    (72, 73, 74),
]


@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
@pytest.mark.parametrize("m,n,p", matmul_dims)
def test_matmul(m: int, n: int, p: int, device: backend_device.Device) -> None:
    _A = randn(m, n)
    _B = randn(n, p)
    A = Matrix(_A, device=device)
    B = Matrix(_B, device=device)
    C = A @ B
    assert C.shape == (m, p)
    np.testing.assert_allclose(C.numpy(), _A @ _B, rtol=1e-4, atol=1e-4)
    assert A.matmul(B) == C


def test_matmul_known_values() -> None:
    A = Matrix([[1, 2, 3], [4, 5, 6]])
    B = Matrix([[7, 8], [9, 10], [11, 12]])
    assert A @ B == Matrix([[58, 64], [139, 154]])


@pytest.mark.parametrize(
    "lhs_shape,rhs_shape", [((2, 3), (2, 2)), ((2, 3), (2, 3)), ((1, 4), (1, 4))]
)
def test_matmul_shape_mismatch(
    lhs_shape: tuple[int, int], rhs_shape: tuple[int, int]
) -> None:
    A = Matrix(randn(*lhs_shape))
    B = Matrix(randn(*rhs_shape))
    with pytest.raises(ShapeMismatchError):
        A @ B


def test_imatmul() -> None:
    _A = randn(2, 3)
    _B = randn(3, 4)
    A = Matrix(_A)
    A @= Matrix(_B)
    assert A.shape == (2, 4)
    np.testing.assert_allclose(A.numpy(), _A @ _B, rtol=1e-5, atol=1e-5)


def test_matmul_rejects_scalar() -> None:
    with pytest.raises(TypeError):
        Matrix([[1.0]]) @ 2.0  # type: ignore[operator]


### Equality and rendering


def test_equality() -> None:
    A = Matrix([[1, 2], [3, 4]])
    assert A == Matrix([[1, 2], [3, 4]])
    assert A != Matrix([[1, 2], [3, 5]])
    assert A != Matrix([1, 2, 3, 4])
    assert A != [[1, 2], [3, 4]]
    assert Matrix([[np.nan]]) != Matrix([[np.nan]])
    with pytest.raises(TypeError):
        hash(A)


def test_repr_multirow() -> None:
    A = Matrix([[1, 2], [3, 4.5]])
    assert repr(A) == "Matrix([\n    [1.0, 2.0],\n    [3.0, 4.5],\n])"
    assert str(A) == repr(A)


def test_repr_single_row() -> None:
    A = Matrix([1, 0.5, -2])
    assert repr(A) == "Matrix(\n    [1.0, 0.5, -2.0],\n)"
