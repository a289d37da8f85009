# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Integer-addressed node arena."""

from .node_store import NodeStore
from .types import NodeRecord

__all__ = ["NodeRecord", "NodeStore"]
