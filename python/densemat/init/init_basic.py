from typing import Optional

import numpy as np

from densemat.backend.device import Device
from densemat.matrix import Matrix, Scalar


def rand(
    rows: int,
    columns: int,
    low: float = 0.0,
    high: float = 1.0,
    closed: bool = False,
    rng: Optional[np.random.Generator] = None,
    device: Optional[Device] = None,
) -> Matrix:
    """Generate random numbers uniform between low and high"""
    return Matrix.random(
        rows, columns, low=low, high=high, closed=closed, rng=rng, device=device
    )


def constant(
    rows: int,
    columns: int,
    c: Scalar = 1.0,
    device: Optional[Device] = None,
) -> Matrix:
    """Generate constant Matrix"""
    return Matrix.full(rows, columns, c, device=device)


def ones(rows: int, columns: int, device: Optional[Device] = None) -> Matrix:
    """Generate all-ones Matrix"""
    return constant(rows, columns, c=1.0, device=device)


def zeros(rows: int, columns: int, device: Optional[Device] = None) -> Matrix:
    """Generate all-zeros Matrix"""
    return constant(rows, columns, c=0.0, device=device)


def zeros_like(array: Matrix, *, device: Optional[Device] = None) -> Matrix:
    device = device if device else array.device
    return zeros(*array.shape, device=device)


def ones_like(array: Matrix, *, device: Optional[Device] = None) -> Matrix:
    device = device if device else array.device
    return ones(*array.shape, device=device)
