# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Incremental KD-tree over node-store ids.

Summary
-------
Nodes are linked through ``kd_parent``/``kd_left``/``kd_right`` on their
records. A node with split dimension ``d`` keeps strictly smaller coordinates
on its left and greater-or-equal coordinates on its right; the split
dimension of an inserted node is its parent's plus one, modulo ``D``. The
tree is never rebalanced.

Two deletion strategies exist. :meth:`KDTree.remove` replaces the deleted
node by the minimum of one of its subtrees and preserves the remaining
structure. :meth:`KDTree.reconstruct` tears out both subtrees and reinserts
them, which costs more but needs no replacement bookkeeping.

Complexity
----------
Insert and nearest are ``O(depth)`` on average; range search is
``O(depth + k)``; ``remove`` is ``O(n^(1-1/D))`` for a balanced tree.

See Also
--------
plantree.spatial.brute_force
plantree.spatial.validate
"""

from __future__ import annotations

import logging
import math
from typing import Callable, List, Optional, Set, Tuple

import numpy as np

from plantree.common.errors import IndexCorruption, PreconditionViolation
from plantree.common.vector import StateLike, as_state, distance
from plantree.store import NodeRecord, NodeStore

logger = logging.getLogger(__name__)


class KDTree:
    """KD-tree whose nodes are records of a :class:`NodeStore`.

    Parameters
    ----------
    store:
        Node arena; the tree root lives in ``store.kd_root``.
    dims:
        Number of split dimensions, defaults to ``store.dims``.
    max_iterations:
        Upper bound on the nodes visited by one traversal. Exceeding it
        means the links form a cycle or the tree outgrew the bound.
    """

    def __init__(
        self, store: NodeStore, *, dims: Optional[int] = None, max_iterations: int = 50000
    ) -> None:
        self.store = store
        self.dims = dims if dims is not None else store.dims
        self.max_iterations = max_iterations
        # results of the most recent queries
        self.nearest_node: Optional[int] = None
        self.nearest_distance = math.inf
        self.nearby_nodes: Set[int] = set()

    @property
    def root(self) -> Optional[int]:
        return self.store.kd_root

    def __contains__(self, node_id: object) -> bool:
        if node_id not in self.store:
            return False
        rec = self.store.get(node_id)  # type: ignore[arg-type]
        return self.store.kd_root == node_id or rec.kd_parent is not None

    def __len__(self) -> int:
        return len(self.members())

    def _require_member(self, node_id: int) -> NodeRecord:
        rec = self.store.get(node_id)
        if node_id not in self:
            raise PreconditionViolation(f"node {node_id} is not in the kd-tree")
        return rec

    def _overflow(self, what: str) -> IndexCorruption:
        return IndexCorruption(f"{what} exceeded {self.max_iterations} steps; kd links are malformed")

    # ------------------------------------------------------------------
    # Insertion
    def insert(self, node_id: int, root: Optional[int] = None) -> None:
        """Insert ``node_id`` descending from ``root`` (default: tree root).

        The descent compares against the split dimension of every visited
        node and stops at the first empty child slot.

        Raises
        ------
        PreconditionViolation
            If the node is already linked into the tree or ``root`` is not a
            member.
        IndexCorruption
            If the descent exceeds ``max_iterations``; nothing is modified.
        """

        rec = self.store.get(node_id)
        if node_id in self:
            raise PreconditionViolation(f"node {node_id} is already in the kd-tree")
        if self.store.kd_root is None:
            rec.reset_kd()
            self.store.kd_root = node_id
            return

        cur_id = self.store.kd_root if root is None else root
        if cur_id not in self:
            raise PreconditionViolation(f"insertion root {cur_id} is not in the kd-tree")
        for _ in range(self.max_iterations):
            cur = self.store.get(cur_id)
            dim = cur.split_dim
            if rec.state[dim] < cur.state[dim]:
                if cur.kd_left is None:
                    cur.kd_left = node_id
                    break
                cur_id = cur.kd_left
            else:
                if cur.kd_right is None:
                    cur.kd_right = node_id
                    break
                cur_id = cur.kd_right
        else:
            raise self._overflow(f"insert of node {node_id}")

        rec.kd_parent = cur_id
        rec.kd_left = None
        rec.kd_right = None
        rec.split_dim = (dim + 1) % self.dims

    # ------------------------------------------------------------------
    # Queries
    def _descend(self, state: np.ndarray, root: int) -> int:
        """Follow the query's side from ``root`` to the last existing node."""

        cur_id = root
        for _ in range(self.max_iterations):
            cur = self.store.get(cur_id)
            dim = cur.split_dim
            nxt = cur.kd_left if state[dim] < cur.state[dim] else cur.kd_right
            if nxt is None:
                return cur_id
            cur_id = nxt
        raise self._overflow("descent")

    def _search(
        self,
        state: np.ndarray,
        root: int,
        limit: Callable[[], float],
        visit: Callable[[int, float], None],
    ) -> None:
        """Backtracking search shared by nearest and range queries.

        Each subtree is entered by a guided descent to a leaf, then walked
        back up to its root. At every node on the way the split plane is
        compared against ``limit()``; within the limit the node is handed to
        ``visit`` and the far-side child subtree is searched before the walk
        continues upward. Frames on the explicit stack reproduce the order of
        the recursive formulation.
        """

        stack: List[Tuple[int, int]] = [(root, self._descend(state, root))]
        steps = 0
        while stack:
            sub_root, cur_id = stack.pop()
            steps += 1
            if steps > self.max_iterations:
                raise self._overflow("search")
            cur = self.store.get(cur_id)
            dim = cur.split_dim
            near_side_left = state[dim] < cur.state[dim]
            within = abs(state[dim] - cur.state[dim]) <= limit()
            if within:
                visit(cur_id, distance(state, cur.state))

            if cur_id != sub_root:
                if cur.kd_parent is None:
                    raise IndexCorruption(f"node {cur_id} lost its kd parent below {sub_root}")
                stack.append((sub_root, cur.kd_parent))
            if within:
                far = cur.kd_right if near_side_left else cur.kd_left
                if far is not None:
                    stack.append((far, self._descend(state, far)))

    def nearest(self, state: StateLike, root: Optional[int] = None) -> Optional[int]:
        """Return the id closest to ``state`` or ``None`` for an empty tree.

        The first node found at the minimal distance wins. The result is also
        kept in :attr:`nearest_node` and :attr:`nearest_distance`.
        """

        query = as_state(state, self.dims)
        self.nearest_node = None
        self.nearest_distance = math.inf
        start = self.store.kd_root if root is None else root
        if start is None:
            return None

        def visit(node_id: int, dist: float) -> None:
            if dist < self.nearest_distance:
                self.nearest_node = node_id
                self.nearest_distance = dist

        self._search(query, start, lambda: self.nearest_distance, visit)
        return self.nearest_node

    def range_search(
        self, state: StateLike, radius: float, root: Optional[int] = None
    ) -> Set[int]:
        """Return every id within ``radius`` (inclusive) of ``state``.

        The result is also kept in :attr:`nearby_nodes`.
        """

        query = as_state(state, self.dims)
        self.nearby_nodes = set()
        start = self.store.kd_root if root is None else root
        if start is None:
            return set()
        found = self.nearby_nodes

        def visit(node_id: int, dist: float) -> None:
            if dist <= radius:
                found.add(node_id)

        self._search(query, start, lambda: radius, visit)
        return set(found)

    def clear_search_state(self) -> None:
        self.nearest_node = None
        self.nearest_distance = math.inf
        self.nearby_nodes = set()

    # ------------------------------------------------------------------
    # Deletion helpers
    def _find_min(self, sub_root: int, dim: int) -> int:
        """Return the node with the smallest ``state[dim]`` below ``sub_root``."""

        best = sub_root
        best_val = float(self.store.get(sub_root).state[dim])
        stack = [sub_root]
        steps = 0
        while stack:
            steps += 1
            if steps > self.max_iterations:
                raise self._overflow("minimum search")
            node_id = stack.pop()
            node = self.store.get(node_id)
            if node.state[dim] < best_val:
                best, best_val = node_id, float(node.state[dim])
            if node.split_dim == dim:
                # right side holds values >= this node
                if node.kd_left is not None:
                    stack.append(node.kd_left)
                continue
            if node.kd_right is not None:
                stack.append(node.kd_right)
            if node.kd_left is not None:
                stack.append(node.kd_left)
        return best

    def _collect(self, sub_root: Optional[int]) -> List[int]:
        """Return ids below ``sub_root`` in pre-order, right subtree first."""

        out: List[int] = []
        stack = [] if sub_root is None else [sub_root]
        while stack:
            node_id = stack.pop()
            out.append(node_id)
            if len(out) > self.max_iterations:
                raise self._overflow("subtree collection")
            node = self.store.get(node_id)
            if node.kd_left is not None:
                stack.append(node.kd_left)
            if node.kd_right is not None:
                stack.append(node.kd_right)
        return out

    def _check_parent_link(self, node_id: int) -> None:
        parent = self.store.get(node_id).kd_parent
        if parent is None:
            if self.store.kd_root != node_id:
                raise IndexCorruption(f"node {node_id} has no kd parent but is not the root")
            return
        prec = self.store.get(parent)
        if node_id not in (prec.kd_left, prec.kd_right):
            raise IndexCorruption(f"node {node_id} is not linked from its kd parent {parent}")

    def _replace_child(self, parent: Optional[int], old: int, new: Optional[int]) -> None:
        if parent is None:
            self.store.kd_root = new
            return
        prec = self.store.get(parent)
        if prec.kd_left == old:
            prec.kd_left = new
        else:
            prec.kd_right = new

    def _splice(self, target: int, repl: int, from_right: bool) -> None:
        """Move detached ``repl`` into the position held by ``target``."""

        t = self.store.get(target)
        r = self.store.get(repl)
        if from_right:
            left, right = t.kd_left, t.kd_right
        else:
            # remaining left nodes are >= the replacement on this axis
            left, right = None, t.kd_left
        r.split_dim = t.split_dim
        r.kd_left = left
        r.kd_right = right
        for child in (left, right):
            if child is not None:
                self.store.get(child).kd_parent = repl
        r.kd_parent = t.kd_parent
        self._replace_child(t.kd_parent, target, repl)
        t.reset_kd()

    # ------------------------------------------------------------------
    # Deletion
    def remove(self, node_id: int) -> None:
        """Delete ``node_id`` in place by minimum replacement.

        A node with a right subtree is replaced by the minimum of that
        subtree along the node's split dimension. A node with only a left
        subtree is replaced by the minimum of the left subtree, which then
        becomes the replacement's right subtree. The replacement's former
        position is vacated the same way until a childless node is reached.
        All replacements are located before the first link changes.
        """

        self._require_member(node_id)
        chain: List[Tuple[int, int, bool]] = []
        cur_id = node_id
        for _ in range(self.max_iterations):
            self._check_parent_link(cur_id)
            cur = self.store.get(cur_id)
            if cur.kd_right is not None:
                repl, from_right = self._find_min(cur.kd_right, cur.split_dim), True
            elif cur.kd_left is not None:
                repl, from_right = self._find_min(cur.kd_left, cur.split_dim), False
            else:
                break
            chain.append((cur_id, repl, from_right))
            cur_id = repl
        else:
            raise self._overflow(f"removal of node {node_id}")

        leaf = self.store.get(cur_id)
        self._replace_child(leaf.kd_parent, cur_id, None)
        leaf.reset_kd()
        for target, repl, from_right in reversed(chain):
            self._splice(target, repl, from_right)

    def reconstruct(self, node_id: int) -> None:
        """Delete ``node_id`` by reinserting both of its subtrees.

        Subtree nodes are gathered right subtree first, unlinked, and
        reinserted from the deleted node's KD parent. When the root is
        deleted the first gathered node becomes the new root.
        """

        rec = self._require_member(node_id)
        self._check_parent_link(node_id)
        pending = self._collect(rec.kd_right) + self._collect(rec.kd_left)
        for other in pending:
            self.store.get(other).reset_kd()

        parent = rec.kd_parent
        rec.reset_kd()
        if parent is None:
            if not pending:
                self.store.kd_root = None
                return
            sub_root = pending.pop(0)
            self.store.kd_root = sub_root
        else:
            self._replace_child(parent, node_id, None)
            sub_root = parent
        logger.debug("reconstructing %d nodes below %s after removing %s", len(pending), sub_root, node_id)
        for other in pending:
            self.insert(other, sub_root)

    # ------------------------------------------------------------------
    # Introspection
    def members(self) -> List[int]:
        """Return all ids reachable from the root in pre-order."""

        if self.store.kd_root is None:
            return []
        return self._collect(self.store.kd_root)

    def depth(self) -> int:
        """Number of levels; ``0`` for an empty tree."""

        if self.store.kd_root is None:
            return 0
        deepest = 0
        stack = [(self.store.kd_root, 1)]
        steps = 0
        while stack:
            steps += 1
            if steps > self.max_iterations:
                raise self._overflow("depth computation")
            node_id, level = stack.pop()
            deepest = max(deepest, level)
            node = self.store.get(node_id)
            for child in (node.kd_left, node.kd_right):
                if child is not None:
                    stack.append((child, level + 1))
        return deepest


__all__ = ["KDTree"]
