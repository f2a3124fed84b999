from .init_basic import (
    constant,
    ones,
    ones_like,
    rand,
    zeros,
    zeros_like,
)

__all__ = [
    "rand",
    "constant",
    "ones",
    "zeros",
    "zeros_like",
    "ones_like",
]
