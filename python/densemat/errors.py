"""Exception types raised by densemat.

Every check runs before the receiver is touched, so catching one of these
leaves the matrix exactly as it was.
"""


class MatrixError(Exception):
    """Base class for all densemat errors."""


class OutOfRangeError(MatrixError, IndexError):
    """An index or range falls outside the matrix extent (or ``lo > hi``)."""


class ShapeMismatchError(MatrixError, ValueError):
    """Operand shapes are incompatible for the requested operation."""


class RaggedInputError(MatrixError, ValueError):
    """Nested input rows do not all have the same length."""


class InvalidShapeError(MatrixError, ValueError):
    """A shape is not a positive ``(rows, columns)`` pair matching the data."""


class InvalidSelectorError(MatrixError, TypeError):
    """An index object cannot be interpreted as a row or column selector."""
