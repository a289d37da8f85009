# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Shared reporting for structural invariant checks."""

from __future__ import annotations

import logging
from typing import List, Optional

from .errors import IndexCorruption

_STRICT = False
_log = logging.getLogger(__name__)


def set_strict_validation(flag: bool) -> None:
    """Enable or disable raising on invariant violations."""

    global _STRICT
    _STRICT = bool(flag)


def report_violations(name: str, errors: List[str], *, strict: Optional[bool] = None) -> None:
    """Raise or log ``errors`` found while validating ``name``.

    Parameters
    ----------
    name:
        Structure label used in the message, e.g. ``"kd-tree"``.
    errors:
        Human readable violations; nothing happens when empty.
    strict:
        When ``True`` raise :class:`IndexCorruption`, otherwise log a warning.
        ``None`` uses the module default set by :func:`set_strict_validation`.
    """

    if not errors:
        return
    if strict is None:
        strict = _STRICT
    msg = "; ".join(errors[:10])
    if len(errors) > 10:
        msg += f" (+{len(errors) - 10} more)"
    if strict:
        raise IndexCorruption(f"{name} invariant violated: {msg}")
    _log.warning("%s invariant violated: %s", name, msg)


__all__ = ["set_strict_validation", "report_violations"]
