# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Spatial index over node-store ids."""

from .brute_force import nearest_brute_force, range_search_brute_force
from .kd_tree import KDTree
from .validate import validate_kd_tree

__all__ = ["KDTree", "nearest_brute_force", "range_search_brute_force", "validate_kd_tree"]
