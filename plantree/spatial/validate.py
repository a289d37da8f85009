# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Structural checks for a KD-tree stored in a :class:`NodeStore`.

The walk carries per-axis bounds inherited from every ancestor: a node must
lie in ``[lower, upper)`` on each axis.
"""

from __future__ import annotations

from typing import List, Optional, Set

import numpy as np

from plantree.common.validation import report_violations
from plantree.store import NodeStore


def validate_kd_tree(
    store: NodeStore,
    *,
    dims: Optional[int] = None,
    strict: Optional[bool] = None,
) -> List[str]:
    """Return the list of KD invariant violations found in ``store``.

    Checks ordering bounds, parent back-links, the split-dimension rule, the
    root's split dimension, cycles and records that claim a KD parent without
    being reachable from the root.
    """

    dims = dims if dims is not None else store.dims
    errors: List[str] = []
    reached: Set[int] = set()
    root = store.kd_root
    if root is not None:
        if root not in store:
            errors.append(f"kd root {root} missing from store")
        else:
            rrec = store.get(root)
            if rrec.kd_parent is not None:
                errors.append(f"kd root {root} has kd parent {rrec.kd_parent}")
            if rrec.split_dim != 0:
                errors.append(f"kd root {root} has split dimension {rrec.split_dim}")
            lower = np.full(dims, -np.inf)
            upper = np.full(dims, np.inf)
            stack = [(root, lower, upper)]
            while stack:
                node_id, lo, hi = stack.pop()
                if node_id in reached:
                    errors.append(f"node {node_id} reachable twice (cycle or shared child)")
                    continue
                reached.add(node_id)
                rec = store.get(node_id)
                if np.any(rec.state < lo) or np.any(rec.state >= hi):
                    errors.append(f"node {node_id} lies outside the bounds set by its ancestors")
                if not 0 <= rec.split_dim < dims:
                    errors.append(f"node {node_id} has invalid split dimension {rec.split_dim}")
                    continue
                dim = rec.split_dim
                for child, is_left in ((rec.kd_left, True), (rec.kd_right, False)):
                    if child is None:
                        continue
                    if child not in store:
                        errors.append(f"kd child {child} of {node_id} missing from store")
                        continue
                    crec = store.get(child)
                    if crec.kd_parent != node_id:
                        errors.append(
                            f"node {child} has kd parent {crec.kd_parent}, expected {node_id}"
                        )
                    if crec.split_dim != (dim + 1) % dims:
                        errors.append(
                            f"node {child} has split dimension {crec.split_dim} under {node_id}"
                        )
                    clo, chi = lo.copy(), hi.copy()
                    if is_left:
                        chi[dim] = min(chi[dim], rec.state[dim])
                    else:
                        clo[dim] = max(clo[dim], rec.state[dim])
                    stack.append((child, clo, chi))

    for rec in store.records():
        if rec.id in reached:
            continue
        if rec.kd_parent is not None or rec.kd_left is not None or rec.kd_right is not None:
            errors.append(f"node {rec.id} has kd links but is not reachable from the root")

    report_violations("kd-tree", errors, strict=strict)
    return errors


__all__ = ["validate_kd_tree"]
