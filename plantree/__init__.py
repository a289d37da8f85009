# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Incremental KD-tree and addressable priority queue over a shared node store."""

from plantree.common.config import TreeConfig, load_config
from plantree.common.errors import (
    DimensionMismatch,
    IndexCorruption,
    NodeNotFound,
    PlanTreeError,
    PreconditionViolation,
    SingularMatrix,
)
from plantree.planning import PlanningTree
from plantree.queue import AddressablePriorityQueue
from plantree.spatial import KDTree
from plantree.store import NodeRecord, NodeStore

__all__ = [
    "__version__",
    "AddressablePriorityQueue",
    "DimensionMismatch",
    "IndexCorruption",
    "KDTree",
    "NodeNotFound",
    "NodeRecord",
    "NodeStore",
    "PlanningTree",
    "PlanTreeError",
    "PreconditionViolation",
    "SingularMatrix",
    "TreeConfig",
    "load_config",
]
__version__ = "0.1.0"
