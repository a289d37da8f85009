# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Arena of node records addressed by integer id.

Summary
-------
The store is the only place where ids are created and destroyed. The KD-tree,
the priority queue and the planning tree keep ids and resolve them here, so a
dangling reference surfaces as :class:`NodeNotFound` instead of a stale object.
The store also carries the two tree roots because :meth:`NodeStore.reset`
must clear them together with the records.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional

from plantree.common.errors import NodeNotFound, PreconditionViolation
from plantree.common.vector import StateLike, as_state

from .types import NodeRecord

logger = logging.getLogger(__name__)


class NodeStore:
    """Owns every :class:`NodeRecord`.

    Parameters
    ----------
    dims:
        Dimensionality of node states; enforced on :meth:`create`.
    """

    def __init__(self, dims: int = 3) -> None:
        self.dims = dims
        self._records: Dict[int, NodeRecord] = {}
        self._next_id = 0
        self.kd_root: Optional[int] = None
        self.origin: Optional[int] = None

    # ------------------------------------------------------------------
    # Record lifecycle
    def create(self, state: StateLike) -> int:
        """Allocate a record for ``state`` and return its id."""

        arr = as_state(state, self.dims)
        node_id = self._next_id
        self._next_id += 1
        self._records[node_id] = NodeRecord(node_id, arr)
        return node_id

    def get(self, node_id: int) -> NodeRecord:
        """Return the record for ``node_id``.

        Raises
        ------
        NodeNotFound
            If ``node_id`` is not stored.
        """

        try:
            return self._records[node_id]
        except KeyError:
            raise NodeNotFound(node_id) from None

    def set(self, node_id: int, record: NodeRecord) -> None:
        """Replace the record stored under ``node_id``."""

        if node_id not in self._records:
            raise NodeNotFound(node_id)
        if record.id != node_id:
            raise PreconditionViolation(f"record id {record.id} does not match key {node_id}")
        self._records[node_id] = record

    def remove(self, node_id: int) -> None:
        """Delete a record that has been detached from every structure.

        Raises
        ------
        NodeNotFound
            If ``node_id`` is not stored.
        PreconditionViolation
            If the record is still queued, linked into the KD-tree or into the
            logical tree.
        """

        rec = self.get(node_id)
        still_linked: List[str] = []
        if rec.heap_index is not None:
            still_linked.append("priority queue")
        if (
            self.kd_root == node_id
            or rec.kd_parent is not None
            or rec.kd_left is not None
            or rec.kd_right is not None
        ):
            still_linked.append("kd-tree")
        if rec.parent is not None or rec.children or self.origin == node_id:
            still_linked.append("planning tree")
        if still_linked:
            raise PreconditionViolation(
                f"node {node_id} still linked into {', '.join(still_linked)}"
            )
        del self._records[node_id]

    def reset(self) -> None:
        """Drop all records and clear both roots."""

        logger.debug("resetting node store with %d records", len(self._records))
        self._records.clear()
        self._next_id = 0
        self.kd_root = None
        self.origin = None

    # ------------------------------------------------------------------
    # Container protocol
    def records(self) -> Iterator[NodeRecord]:
        return iter(list(self._records.values()))

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._records

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._records))

    def __len__(self) -> int:
        return len(self._records)


__all__ = ["NodeStore"]
