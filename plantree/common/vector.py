# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""State vector helpers on top of NumPy arrays."""

from __future__ import annotations

from typing import Optional, Sequence, Union

import numpy as np

from .errors import DimensionMismatch

StateLike = Union[Sequence[float], np.ndarray]

STATE_TOLERANCE = 1e-6


def as_state(values: StateLike, dims: Optional[int] = None) -> np.ndarray:
    """Return ``values`` as a 1-D ``float64`` array of length ``dims``.

    Raises
    ------
    DimensionMismatch
        If ``values`` is not one-dimensional or its length differs from
        ``dims``.
    """

    arr = np.array(values, dtype=np.float64)
    if arr.ndim != 1:
        raise DimensionMismatch(f"state must be one-dimensional, got shape {arr.shape}")
    if dims is not None and arr.shape[0] != dims:
        raise DimensionMismatch(f"expected {dims} dimensions, got {arr.shape[0]}")
    return arr


def distance(a: np.ndarray, b: np.ndarray) -> float:
    """Euclidean norm ``||a - b||``."""

    if a.shape != b.shape:
        raise DimensionMismatch(f"incompatible vector lengths {a.shape[0]} and {b.shape[0]}")
    return float(np.linalg.norm(a - b))


def states_equal(a: np.ndarray, b: np.ndarray, tol: float = STATE_TOLERANCE) -> bool:
    """Component-wise equality within an absolute tolerance."""

    if a.shape != b.shape:
        return False
    return bool(np.all(np.abs(a - b) <= tol))


__all__ = ["StateLike", "STATE_TOLERANCE", "as_state", "distance", "states_equal"]
