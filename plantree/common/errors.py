# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Typed failures raised by the node store, the indices and the filters.

Each class also derives from the closest built-in exception so callers that
already catch ``KeyError``/``ValueError``/``RuntimeError`` keep working.
"""

from __future__ import annotations

import numpy as np


class PlanTreeError(Exception):
    """Base class for all library errors."""


class NodeNotFound(PlanTreeError, KeyError):
    """An operation referenced an id that is not in the node store."""

    def __init__(self, node_id: object) -> None:
        super().__init__(node_id)
        self.node_id = node_id

    def __str__(self) -> str:
        return f"unknown node id {self.node_id!r}"


class PreconditionViolation(PlanTreeError, ValueError):
    """A structure operation was called on an id that is not a member."""


class DimensionMismatch(PlanTreeError, ValueError):
    """Vector operands of incompatible length."""


class IndexCorruption(PlanTreeError, RuntimeError):
    """A traversal exceeded its iteration bound or found broken links."""


class SingularMatrix(PlanTreeError, np.linalg.LinAlgError):
    """A matrix inversion could not proceed."""


__all__ = [
    "PlanTreeError",
    "NodeNotFound",
    "PreconditionViolation",
    "DimensionMismatch",
    "IndexCorruption",
    "SingularMatrix",
]
