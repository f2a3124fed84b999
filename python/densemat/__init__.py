"""
densemat

A dense two-dimensional float32 matrix with checked slicing, in-place region
assignment, elementwise arithmetic and a matrix product, computed by a
pluggable vectorized backend.
"""

import logging
from importlib.metadata import PackageNotFoundError as _PkgNotFoundError
from importlib.metadata import version as _pkg_version

from .addressing import ALL, All, From, Single, Span, Through
from .errors import (
    InvalidSelectorError,
    InvalidShapeError,
    MatrixError,
    OutOfRangeError,
    RaggedInputError,
    ShapeMismatchError,
)
from .matrix import Axis, Matrix, SortOrder, matrix

__all__ = [
    "__version__",
    "Matrix",
    "matrix",
    "Axis",
    "SortOrder",
    "Single",
    "Span",
    "From",
    "Through",
    "All",
    "ALL",
    "MatrixError",
    "OutOfRangeError",
    "ShapeMismatchError",
    "RaggedInputError",
    "InvalidShapeError",
    "InvalidSelectorError",
]

logging.getLogger(__name__).addHandler(logging.NullHandler())

try:
    __version__ = _pkg_version("densemat")
except _PkgNotFoundError:
    # Fallback for editable installs before metadata is written
    __version__ = "0.1.0"
