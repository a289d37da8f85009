# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Consistency checks for the logical parent/child tree."""

from __future__ import annotations

from typing import List, Optional, Set

from plantree.common.validation import report_violations
from plantree.store import NodeStore


def validate_logical_tree(store: NodeStore, *, strict: Optional[bool] = None) -> List[str]:
    """Return violations of the single-origin parent/child invariants.

    Every record except the origin has a stored parent that lists it as a
    child, every listed child points back, and all records are reachable
    from the origin.
    """

    errors: List[str] = []
    if len(store) == 0:
        if store.origin is not None:
            errors.append(f"origin {store.origin} set on an empty store")
        report_violations("planning tree", errors, strict=strict)
        return errors

    origin = store.origin
    if origin is None or origin not in store:
        errors.append(f"origin {origin} missing from a non-empty store")
    elif store.get(origin).parent is not None:
        errors.append(f"origin {origin} has parent {store.get(origin).parent}")

    for rec in store.records():
        if rec.id != origin:
            if rec.parent is None:
                errors.append(f"node {rec.id} has no parent but is not the origin")
            elif rec.parent not in store:
                errors.append(f"node {rec.id} has missing parent {rec.parent}")
            elif rec.id not in store.get(rec.parent).children:
                errors.append(f"node {rec.id} not listed as child of {rec.parent}")
        for child in rec.children:
            if child not in store:
                errors.append(f"node {rec.id} lists missing child {child}")
            elif store.get(child).parent != rec.id:
                errors.append(f"child {child} of {rec.id} points to parent {store.get(child).parent}")

    if origin is not None and origin in store:
        reached: Set[int] = set()
        stack = [origin]
        while stack:
            node_id = stack.pop()
            if node_id in reached:
                errors.append(f"node {node_id} reachable twice from the origin")
                continue
            reached.add(node_id)
            stack.extend(c for c in store.get(node_id).children if c in store)
        unreached = len(store) - len(reached)
        if unreached:
            errors.append(f"{unreached} nodes unreachable from origin {origin}")

    report_violations("planning tree", errors, strict=strict)
    return errors


__all__ = ["validate_logical_tree"]
