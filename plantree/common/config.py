# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Configuration for the planning tree and its indices."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

from omegaconf import OmegaConf


def debug_enabled() -> bool:
    """Return True when structural validation should run after each mutation."""
    return os.environ.get("PLANTREE_DEBUG", "").lower() in {"1", "true", "yes"}


@dataclass
class TreeConfig:
    """Settings shared by every index operation on one planning tree.

    Parameters
    ----------
    dims : int
        Dimensionality ``D`` of node states, by default ``3``.
    max_iterations : int
        Defensive bound on any single traversal. Exceeding it raises
        :class:`~plantree.common.errors.IndexCorruption`.
    cost_tolerance : float
        Costs closer than this compare equal in the priority queue.
    state_tolerance : float
        Absolute per-component tolerance for state equality.
    validate : bool
        Run the structural validators after every mutating operation.
    event_log : str, optional
        JSON-lines file receiving structural events.
    """

    dims: int = 3
    max_iterations: int = 50000
    cost_tolerance: float = 1e-6
    state_tolerance: float = 1e-6
    validate: bool = False
    event_log: Optional[str] = None

    def __post_init__(self) -> None:
        if self.dims < 1:
            raise ValueError("dims must be >= 1")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be >= 1")
        if self.cost_tolerance < 0.0:
            raise ValueError("cost_tolerance must be >= 0")
        if self.state_tolerance < 0.0:
            raise ValueError("state_tolerance must be >= 0")


def load_config(
    path: Union[str, Path, None] = None, overrides: Optional[Iterable[str]] = None
) -> TreeConfig:
    """Build a :class:`TreeConfig` from defaults, a YAML file and overrides.

    Parameters
    ----------
    path:
        Optional YAML file with a subset of the fields.
    overrides:
        Dotlist entries such as ``["dims=2", "validate=true"]``.
    """

    cfg = OmegaConf.structured(TreeConfig)
    if path is not None:
        cfg = OmegaConf.merge(cfg, OmegaConf.load(str(path)))
    if overrides:
        cfg = OmegaConf.merge(cfg, OmegaConf.from_dotlist(list(overrides)))
    return OmegaConf.to_object(cfg)  # type: ignore[return-value]


__all__ = ["TreeConfig", "load_config", "debug_enabled"]
