# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Planning tree keeping the node store, KD-tree and queue in step.

Summary
-------
:class:`PlanningTree` is the entry point for tree-growing planners. It owns
one :class:`~plantree.store.NodeStore` and builds the
:class:`~plantree.spatial.KDTree` and the
:class:`~plantree.queue.AddressablePriorityQueue` on top of it. Every
operation touching more than one structure is an ordered sequence of
single-structure operations: ids are validated and traversals planned first,
then each node is dequeued, detached from the KD-tree, unlinked from its
logical parent and finally dropped from the store.

Examples
--------
>>> tree = PlanningTree()
>>> root = tree.add_node([0.0, 0.0, 0.0])
>>> child = tree.add_node([1.0, 0.0, 0.0], parent=root, cost=1.0)
>>> tree.nearest([0.9, 0.1, 0.0]) == child
True
>>> tree.remove_branch(child)
[1]
"""

from __future__ import annotations

import json
import logging
import math
import time
from typing import Any, Dict, List, Optional, Set

from plantree.common.config import TreeConfig, debug_enabled
from plantree.common.errors import IndexCorruption, PreconditionViolation
from plantree.common.vector import StateLike, as_state, states_equal
from plantree.queue import AddressablePriorityQueue, validate_heap
from plantree.spatial import KDTree, validate_kd_tree
from plantree.store import NodeRecord, NodeStore

from .validate import validate_logical_tree

logger = logging.getLogger(__name__)


class PlanningTree:
    """Rooted planning tree with spatial and cost indices.

    Parameters
    ----------
    config:
        Tree settings; defaults to :class:`TreeConfig`.
    """

    def __init__(self, config: Optional[TreeConfig] = None) -> None:
        self.config = config or TreeConfig()
        self.store = NodeStore(dims=self.config.dims)
        self.kd = KDTree(
            self.store, dims=self.config.dims, max_iterations=self.config.max_iterations
        )
        self.queue = AddressablePriorityQueue(self.store, tolerance=self.config.cost_tolerance)
        self._log = {
            "inserts": 0,
            "removals": 0,
            "nearest_queries": 0,
            "range_queries": 0,
            "rebuilds": 0,
            "branch_removals": 0,
        }
        self._log_file = self.config.event_log

    # ------------------------------------------------------------------
    # Diagnostics
    def _log_event(self, op: str, info: Dict[str, Any]) -> None:
        event = {"ts": time.time(), "op": op, **info}
        if self._log_file:
            with open(self._log_file, "a", encoding="utf-8") as fh:
                fh.write(json.dumps(event) + "\n")

    def log_status(self) -> dict:
        """Return a copy of internal counters."""
        return dict(self._log)

    def validate(self, *, strict: Optional[bool] = None) -> List[str]:
        """Run all structural validators and return the combined violations."""

        errors = validate_logical_tree(self.store, strict=strict)
        errors += validate_kd_tree(self.store, dims=self.config.dims, strict=strict)
        errors += validate_heap(self.queue, strict=strict)
        return errors

    def _after_mutation(self) -> None:
        if self.config.validate or debug_enabled():
            self.validate(strict=True)

    # ------------------------------------------------------------------
    # Growth
    def add_node(
        self,
        state: StateLike,
        parent: Optional[int] = None,
        cost: float = 0.0,
        *,
        enqueue: bool = False,
    ) -> int:
        """Create a node, link it below ``parent`` and index it.

        Parameters
        ----------
        state:
            Coordinate of length ``config.dims``.
        parent:
            Logical parent. ``None`` creates the origin, which is only
            allowed once.
        cost:
            Initial ordering key.
        enqueue:
            Also push the node onto the priority queue.

        Returns
        -------
        int
            The new node id.
        """

        if parent is None:
            if self.store.origin is not None:
                raise PreconditionViolation(
                    f"origin {self.store.origin} already exists; pass a parent"
                )
        else:
            self.store.get(parent)

        node_id = self.store.create(state)
        rec = self.store.get(node_id)
        rec.cost = float(cost)
        if parent is None:
            self.store.origin = node_id
        else:
            rec.parent = parent
            self.store.get(parent).children.add(node_id)
        try:
            self.kd.insert(node_id)
        except IndexCorruption:
            self._unlink_new(node_id)
            raise
        if enqueue:
            self.queue.push(node_id)
        self._log["inserts"] += 1
        self._after_mutation()
        return node_id

    def _unlink_new(self, node_id: int) -> None:
        """Drop a node whose KD insert failed; the insert mutates nothing on failure."""

        rec = self.store.get(node_id)
        if rec.parent is not None:
            self.store.get(rec.parent).children.discard(node_id)
            rec.parent = None
        if self.store.origin == node_id:
            self.store.origin = None
        self.store.remove(node_id)
        logger.warning("add_node rolled back node %d", node_id)

    def rewire(self, node_id: int, new_parent: int) -> None:
        """Move ``node_id`` below ``new_parent`` in the logical tree.

        Raises
        ------
        PreconditionViolation
            If ``node_id`` is the origin or ``new_parent`` lies in the
            subtree of ``node_id``.
        """

        rec = self.store.get(node_id)
        self.store.get(new_parent)
        if node_id == self.store.origin:
            raise PreconditionViolation(f"origin {node_id} cannot be rewired")
        if node_id in self.path_to_origin(new_parent):
            raise PreconditionViolation(
                f"rewiring {node_id} below {new_parent} would create a cycle"
            )
        if rec.parent == new_parent:
            return
        old_parent = rec.parent
        if old_parent is not None:
            self.store.get(old_parent).children.discard(node_id)
        rec.parent = new_parent
        self.store.get(new_parent).children.add(node_id)
        self._log_event("rewire", {"node": node_id, "old_parent": old_parent, "new_parent": new_parent})
        self._after_mutation()

    def update_cost(self, node_id: int, cost: float) -> None:
        """Assign ``cost`` and restore the queue position if queued."""

        rec = self.store.get(node_id)
        rec.cost = float(cost)
        if rec.heap_index is not None:
            self.queue.update_key(node_id)
        self._after_mutation()

    # ------------------------------------------------------------------
    # Logical tree queries
    def get(self, node_id: int) -> NodeRecord:
        return self.store.get(node_id)

    def path_to_origin(self, node_id: int) -> List[int]:
        """Return ids from ``node_id`` up to and including the origin."""

        path = [node_id]
        rec = self.store.get(node_id)
        while rec.parent is not None:
            if len(path) > len(self.store):
                raise IndexCorruption(f"parent chain of node {node_id} contains a cycle")
            path.append(rec.parent)
            rec = self.store.get(rec.parent)
        return path

    def descendants(self, node_id: int) -> List[int]:
        """Return the subtree rooted at ``node_id`` in pre-order, root first."""

        self.store.get(node_id)
        out: List[int] = []
        seen: Set[int] = set()
        stack = [node_id]
        while stack:
            cur = stack.pop()
            if cur in seen:
                raise IndexCorruption(f"node {cur} reached twice below {node_id}")
            seen.add(cur)
            out.append(cur)
            stack.extend(sorted(self.store.get(cur).children, reverse=True))
        return out

    # ------------------------------------------------------------------
    # Spatial queries
    def nearest(self, state: StateLike) -> Optional[int]:
        """Return the indexed node closest to ``state``."""

        self._log["nearest_queries"] += 1
        return self.kd.nearest(state)

    def range_search(self, state: StateLike, radius: float) -> Set[int]:
        """Return all indexed nodes within ``radius`` of ``state``."""

        self._log["range_queries"] += 1
        return self.kd.range_search(state, radius)

    def find(self, state: StateLike) -> Optional[int]:
        """Return the lowest id whose state equals ``state`` within tolerance.

        Equality is per component with ``config.state_tolerance``; candidates
        come from a range query that encloses the tolerance box. The cached
        :attr:`nearby_nodes` of an earlier :meth:`range_search` is kept.
        """

        query = as_state(state, self.config.dims)
        tol = self.config.state_tolerance
        cached = self.kd.nearby_nodes
        try:
            candidates = self.kd.range_search(query, tol * math.sqrt(self.config.dims))
        finally:
            self.kd.nearby_nodes = cached
        matches = [
            nid for nid in candidates if states_equal(query, self.store.get(nid).state, tol)
        ]
        return min(matches) if matches else None

    @property
    def nearest_node(self) -> Optional[int]:
        return self.kd.nearest_node

    @property
    def nearest_distance(self) -> float:
        return self.kd.nearest_distance

    @property
    def nearby_nodes(self) -> Set[int]:
        return set(self.kd.nearby_nodes)

    # ------------------------------------------------------------------
    # Queue
    def push(self, node_id: int) -> None:
        self.queue.push(node_id)

    def pop(self) -> int:
        """Remove and return the queued node with the lowest cost."""
        return self.queue.pop_min()

    # ------------------------------------------------------------------
    # Removal
    def _branch_order(self, node_id: int) -> List[int]:
        """Post-order of the logical subtree at ``node_id``, children first."""

        order: List[int] = []
        seen: Set[int] = set()
        stack = [(node_id, False)]
        while stack:
            cur, expanded = stack.pop()
            if expanded:
                order.append(cur)
                continue
            if cur in seen:
                raise IndexCorruption(f"node {cur} reached twice below {node_id}")
            seen.add(cur)
            stack.append((cur, True))
            for child in sorted(self.store.get(cur).children, reverse=True):
                stack.append((child, False))
        return order

    def _discard(self, node_id: int, rebuild: bool) -> None:
        rec = self.store.get(node_id)
        if rec.heap_index is not None:
            self.queue.remove(node_id)
        if node_id in self.kd:
            if rebuild:
                self.kd.reconstruct(node_id)
                self._log["rebuilds"] += 1
            else:
                self.kd.remove(node_id)
        if rec.parent is not None:
            self.store.get(rec.parent).children.discard(node_id)
            rec.parent = None
        self.store.remove(node_id)
        self._log["removals"] += 1

    def remove_branch(self, node_id: int, *, rebuild: bool = False) -> List[int]:
        """Delete the logical subtree rooted at ``node_id``.

        Parameters
        ----------
        node_id:
            Root of the branch. Removing the origin clears everything.
        rebuild:
            Detach nodes from the KD-tree by subtree reinsertion instead of
            minimum replacement.

        Returns
        -------
        list[int]
            Removed ids, children before their parents.
        """

        self.store.get(node_id)
        if node_id == self.store.origin:
            removed = list(self.store)
            self.reset()
            self._log["branch_removals"] += 1
            return removed

        order = self._branch_order(node_id)
        for other in order:
            self._discard(other, rebuild)
        self._log["branch_removals"] += 1
        logger.debug("removed branch at %d (%d nodes)", node_id, len(order))
        self._log_event("remove_branch", {"root": node_id, "removed": len(order), "rebuild": rebuild})
        self._after_mutation()
        return order

    def reset(self) -> None:
        """Clear the store, both indices and any cached query results."""

        count = len(self.store)
        self.queue.clear()
        self.store.reset()
        self.kd.clear_search_state()
        logger.debug("reset planning tree with %d nodes", count)
        self._log_event("reset", {"removed": count})

    # ------------------------------------------------------------------
    # Container protocol
    def size(self) -> int:
        return len(self.store)

    def __len__(self) -> int:
        return len(self.store)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.store


__all__ = ["PlanningTree"]
