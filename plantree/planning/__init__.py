# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Logical planning tree and lifecycle operations."""

from .tree import PlanningTree
from .validate import validate_logical_tree

__all__ = ["PlanningTree", "validate_logical_tree"]
