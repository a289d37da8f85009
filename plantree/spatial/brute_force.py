# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Linear-scan reference queries over every stored record."""

from __future__ import annotations

import math
from typing import Optional, Set

from plantree.common.vector import StateLike, as_state, distance
from plantree.store import NodeStore


def nearest_brute_force(store: NodeStore, state: StateLike) -> Optional[int]:
    """Return the stored id closest to ``state``; ties keep the lowest id."""

    query = as_state(state, store.dims)
    best: Optional[int] = None
    best_dist = math.inf
    for rec in store.records():
        dist = distance(query, rec.state)
        if dist < best_dist:
            best, best_dist = rec.id, dist
    return best


def range_search_brute_force(store: NodeStore, state: StateLike, radius: float) -> Set[int]:
    """Return every stored id within ``radius`` (inclusive) of ``state``."""

    query = as_state(state, store.dims)
    return {rec.id for rec in store.records() if distance(query, rec.state) <= radius}


__all__ = ["nearest_brute_force", "range_search_brute_force"]
