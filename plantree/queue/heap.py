# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Addressable binary min-heap over node costs.

Summary
-------
The heap stores node ids in a dense list ordered by each node's ``cost``.
Every queued record keeps its own position in ``heap_index`` so arbitrary
removal and key updates run in ``O(log n)`` without a search. Costs within
``tolerance`` of each other compare equal and are never swapped.

Complexity
----------
``push``, ``pop_min``, ``remove`` and ``update_key`` are ``O(log n)``.

Examples
--------
>>> from plantree.store import NodeStore
>>> store = NodeStore(dims=1)
>>> q = AddressablePriorityQueue(store)
>>> for cost in (5.0, 3.0):
...     nid = store.create([0.0]); store.get(nid).cost = cost; q.push(nid)
>>> store.get(q.pop_min()).cost
3.0
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from plantree.common.errors import PreconditionViolation
from plantree.common.validation import report_violations
from plantree.store import NodeRecord, NodeStore


class AddressablePriorityQueue:
    """Min-heap of node ids keyed by :attr:`NodeRecord.cost`."""

    def __init__(self, store: NodeStore, *, tolerance: float = 1e-6) -> None:
        self.store = store
        self.tolerance = tolerance
        self._heap: List[int] = []

    # ------------------------------------------------------------------
    # Ordering helpers
    def _compare(self, a: int, b: int) -> int:
        """Return -1, 0 or 1 comparing the costs at positions ``a`` and ``b``."""

        ca = self.store.get(self._heap[a]).cost
        cb = self.store.get(self._heap[b]).cost
        if abs(ca - cb) <= self.tolerance:
            return 0
        return -1 if ca < cb else 1

    def _swap(self, i: int, j: int) -> None:
        heap = self._heap
        heap[i], heap[j] = heap[j], heap[i]
        self.store.get(heap[i]).heap_index = i
        self.store.get(heap[j]).heap_index = j

    def _sift_up(self, child: int) -> int:
        while child > 0:
            parent = (child - 1) // 2
            if self._compare(parent, child) <= 0:
                break
            self._swap(parent, child)
            child = parent
        return child

    def _sift_down(self, parent: int) -> int:
        size = len(self._heap)
        while True:
            left = 2 * parent + 1
            if left >= size:
                break
            child = left
            right = left + 1
            if right < size and self._compare(right, left) < 0:
                child = right
            if self._compare(child, parent) >= 0:
                break
            self._swap(parent, child)
            parent = child
        return parent

    def _member(self, node_id: int) -> Tuple[NodeRecord, int]:
        """Return the record and heap slot of a queued ``node_id`` or raise."""

        rec = self.store.get(node_id)
        idx = rec.heap_index
        if idx is None:
            raise PreconditionViolation(f"node {node_id} is not in the priority queue")
        if not 0 <= idx < len(self._heap) or self._heap[idx] != node_id:
            raise PreconditionViolation(
                f"node {node_id} has stale heap index {idx} (queue size {len(self._heap)})"
            )
        return rec, idx

    # ------------------------------------------------------------------
    # Public API
    def push(self, node_id: int) -> None:
        """Add ``node_id`` keeping heap order."""

        rec = self.store.get(node_id)
        if rec.heap_index is not None:
            raise PreconditionViolation(f"node {node_id} is already queued")
        self._heap.append(node_id)
        rec.heap_index = len(self._heap) - 1
        self._sift_up(rec.heap_index)

    def pop_min(self) -> int:
        """Remove and return the id with the lowest cost."""

        if not self._heap:
            raise PreconditionViolation("pop from an empty priority queue")
        front = self._heap[0]
        last = self._heap.pop()
        self.store.get(front).heap_index = None
        if self._heap:
            self._heap[0] = last
            self.store.get(last).heap_index = 0
            self._sift_down(0)
        return front

    def peek(self) -> Optional[int]:
        """Return the lowest-cost id without removing it."""

        return self._heap[0] if self._heap else None

    def remove(self, node_id: int) -> None:
        """Remove an arbitrary queued ``node_id``.

        The last element fills the vacated slot and is sifted in both
        directions since its relation to the new neighbours is unknown.
        """

        rec, idx = self._member(node_id)
        last = self._heap.pop()
        rec.heap_index = None
        if last == node_id:
            return
        self._heap[idx] = last
        self.store.get(last).heap_index = idx
        idx = self._sift_up(idx)
        self._sift_down(idx)

    def update_key(self, node_id: int) -> None:
        """Restore order after ``node_id``'s cost changed externally."""

        _, idx = self._member(node_id)
        idx = self._sift_up(idx)
        self._sift_down(idx)

    def clear(self) -> None:
        """Empty the queue and reset every member's heap index."""

        for node_id in self._heap:
            if node_id in self.store:
                self.store.get(node_id).heap_index = None
        self._heap.clear()

    def ids(self) -> List[int]:
        """Return queued ids in heap (not sorted) order."""

        return list(self._heap)

    def size(self) -> int:
        return len(self._heap)

    def __len__(self) -> int:
        return len(self._heap)

    def __contains__(self, node_id: object) -> bool:
        if node_id not in self.store:
            return False
        idx = self.store.get(node_id).heap_index  # type: ignore[arg-type]
        return idx is not None and idx < len(self._heap) and self._heap[idx] == node_id


def validate_heap(
    queue: AddressablePriorityQueue, *, strict: Optional[bool] = None
) -> List[str]:
    """Check reverse indices and heap order of ``queue``.

    Returns
    -------
    list[str]
        Violations found; empty when the queue is consistent.
    """

    errors: List[str] = []
    heap = queue._heap
    seen = set()
    for pos, node_id in enumerate(heap):
        if node_id in seen:
            errors.append(f"node {node_id} queued twice")
        seen.add(node_id)
        if node_id not in queue.store:
            errors.append(f"queued node {node_id} missing from store")
            continue
        rec = queue.store.get(node_id)
        if rec.heap_index != pos:
            errors.append(f"node {node_id} at position {pos} has heap_index {rec.heap_index}")
        if pos > 0:
            parent = heap[(pos - 1) // 2]
            if parent in queue.store:
                pc = queue.store.get(parent).cost
                if pc - rec.cost > queue.tolerance:
                    errors.append(f"heap order broken between {parent} and {node_id}")
    report_violations("priority queue", errors, strict=strict)
    return errors


__all__ = ["AddressablePriorityQueue", "validate_heap"]
