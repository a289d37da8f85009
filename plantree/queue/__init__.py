# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Addressable priority queue over node costs."""

from .heap import AddressablePriorityQueue, validate_heap

__all__ = ["AddressablePriorityQueue", "validate_heap"]
