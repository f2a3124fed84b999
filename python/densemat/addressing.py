"""Row/column selectors and their mapping onto a row-major buffer.

A selector picks part of one axis. Whatever form it takes, it is resolved
here, once, into an inclusive ``[lo, hi]`` pair checked against the axis
extent. Two resolved axes form a :class:`Region`, whose shape, strides and
offset are the only addressing information the read and write paths of
:class:`~densemat.matrix.Matrix` use.

Selectors
---------
``Single(i)``      one index, the axis collapses
``Span(lo, hi)``   inclusive range
``From(lo)``       ``lo`` through the last index
``Through(hi)``    the first index through ``hi``
``All()``          the whole axis

Plain ``int`` values are read as ``Single``; Python slices keep their usual
half-open meaning (``1:4`` is ``Span(1, 3)``).
"""

from dataclasses import dataclass
from typing import Any, Union

import numpy as np

from .errors import InvalidSelectorError, OutOfRangeError


@dataclass(frozen=True)
class Single:
    index: int


@dataclass(frozen=True)
class Span:
    lo: int
    hi: int


@dataclass(frozen=True)
class From:
    lo: int


@dataclass(frozen=True)
class Through:
    hi: int


@dataclass(frozen=True)
class All:
    pass


ALL = All()

Selector = Union[Single, Span, From, Through, All]


def _as_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidSelectorError(
            f"Indices must be integers, got {type(value).__name__}"
        )
    return int(value)


def as_selector(obj: Any) -> Selector:
    """Interpret ``obj`` as a selector.

    Parameters
    ----------
    obj : Selector | int | slice
        A selector instance, an integer index, or a unit-step Python slice.

    Returns
    -------
    Selector
        The equivalent selector.

    Raises
    ------
    InvalidSelectorError
        If ``obj`` is of an unsupported type or is a slice with a step other
        than 1.
    """
    if isinstance(obj, (Single, Span, From, Through, All)):
        return obj
    if isinstance(obj, slice):
        if obj.step is not None and _as_int(obj.step) != 1:
            raise InvalidSelectorError("Only unit-step slices are supported")
        start = None if obj.start is None else _as_int(obj.start)
        stop = None if obj.stop is None else _as_int(obj.stop)
        if start is None and stop is None:
            return ALL
        if stop is None:
            return From(start)
        if start is None:
            return Through(stop - 1)
        return Span(start, stop - 1)
    return Single(_as_int(obj))


def is_valid_index(index: int, extent: int) -> bool:
    return 0 <= index < extent


def check_index(index: int, extent: int, axis: str = "row") -> int:
    """Return ``index`` if ``0 <= index < extent``, else raise OutOfRangeError."""
    if not is_valid_index(index, extent):
        raise OutOfRangeError(
            f"{axis} index {index} out of range for extent {extent}"
        )
    return index


def resolve(selector: Any, extent: int, axis: str = "row") -> tuple[int, int]:
    """Resolve a selector to an inclusive ``(lo, hi)`` pair within ``extent``.

    Open ends are filled in with ``0`` and ``extent - 1`` before checking.
    Both ends must be valid indices, which also rejects ``lo > hi``.
    """
    selector = as_selector(selector)
    if isinstance(selector, Single):
        lo = hi = _as_int(selector.index)
    elif isinstance(selector, Span):
        lo, hi = _as_int(selector.lo), _as_int(selector.hi)
    elif isinstance(selector, From):
        lo, hi = _as_int(selector.lo), extent - 1
    elif isinstance(selector, Through):
        lo, hi = 0, _as_int(selector.hi)
    else:
        lo, hi = 0, extent - 1

    check_index(lo, extent, axis)
    check_index(hi, extent, axis)
    if lo > hi:
        raise OutOfRangeError(f"{axis} range [{lo}, {hi}] has lower bound above upper")
    return lo, hi


def linear_offset(row: int, column: int, columns: int) -> int:
    """Offset of element ``(row, column)`` in a row-major buffer."""
    return row * columns + column


@dataclass(frozen=True)
class Region:
    """A resolved rectangle ``[row_lo, row_hi] x [col_lo, col_hi]``.

    ``parent_columns`` is the column count of the matrix the region lives in;
    it fixes the row stride.
    """

    row_lo: int
    row_hi: int
    col_lo: int
    col_hi: int
    parent_columns: int
    single_row: bool = False
    single_column: bool = False

    @property
    def rows(self) -> int:
        return self.row_hi - self.row_lo + 1

    @property
    def columns(self) -> int:
        return self.col_hi - self.col_lo + 1

    @property
    def shape(self) -> tuple[int, int]:
        return (self.rows, self.columns)

    @property
    def size(self) -> int:
        return self.rows * self.columns

    @property
    def strides(self) -> tuple[int, int]:
        return (self.parent_columns, 1)

    @property
    def offset(self) -> int:
        return linear_offset(self.row_lo, self.col_lo, self.parent_columns)

    @property
    def is_element(self) -> bool:
        return self.single_row and self.single_column


def resolve_region(idxs: Any, shape: tuple[int, int]) -> Region:
    """Resolve a ``(row_selector, column_selector)`` pair against ``shape``.

    Raises
    ------
    InvalidSelectorError
        If ``idxs`` is not a pair of selectors.
    OutOfRangeError
        If either selector falls outside the matrix.
    """
    if not isinstance(idxs, tuple) or len(idxs) != 2:
        raise InvalidSelectorError(
            "Matrices are indexed with a (row, column) pair of selectors"
        )
    row_sel, col_sel = as_selector(idxs[0]), as_selector(idxs[1])
    row_lo, row_hi = resolve(row_sel, shape[0], "row")
    col_lo, col_hi = resolve(col_sel, shape[1], "column")
    return Region(
        row_lo,
        row_hi,
        col_lo,
        col_hi,
        parent_columns=shape[1],
        single_row=isinstance(row_sel, Single),
        single_column=isinstance(col_sel, Single),
    )
