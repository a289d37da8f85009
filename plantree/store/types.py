# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Node record shared by the logical tree, the KD-tree and the queue."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Set

import numpy as np


@dataclass
class NodeRecord:
    """One indexed point with linkage into all three structures.

    Summary
    -------
    ``None`` marks an absent link or queue position. The record is owned by
    :class:`~plantree.store.NodeStore`; other components refer to it only by
    ``id``.

    Parameters
    ----------
    id : int
        Stable identifier assigned by the store.
    state : numpy.ndarray
        Coordinate ``(D,)``.
    cost : float, optional
        Ordering key for the priority queue, by default ``0.0``.
    parent : int, optional
        Logical parent in the planning tree.
    children : set[int]
        Logical children.
    heap_index : int, optional
        Position in the queue's backing list.
    kd_parent, kd_left, kd_right : int, optional
        KD-tree links.
    split_dim : int
        Axis this node splits on inside the KD-tree.

    Examples
    --------
    >>> rec = NodeRecord(0, np.zeros(3))
    >>> rec.heap_index is None and rec.kd_parent is None
    True
    """

    id: int
    state: np.ndarray
    cost: float = 0.0
    parent: Optional[int] = None
    children: Set[int] = field(default_factory=set)
    heap_index: Optional[int] = None
    kd_parent: Optional[int] = None
    kd_left: Optional[int] = None
    kd_right: Optional[int] = None
    split_dim: int = 0

    def reset_kd(self) -> None:
        """Drop all KD linkage and restore the default split dimension."""

        self.kd_parent = None
        self.kd_left = None
        self.kd_right = None
        self.split_dim = 0

    def kd_children(self) -> tuple[Optional[int], Optional[int]]:
        return self.kd_left, self.kd_right


__all__ = ["NodeRecord"]
