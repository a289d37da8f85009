# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Errors, configuration and vector helpers shared by all structures."""

from .config import TreeConfig, debug_enabled, load_config
from .errors import (
    DimensionMismatch,
    IndexCorruption,
    NodeNotFound,
    PlanTreeError,
    PreconditionViolation,
    SingularMatrix,
)
from .validation import report_violations, set_strict_validation
from .vector import STATE_TOLERANCE, as_state, distance, states_equal

__all__ = [
    "TreeConfig",
    "debug_enabled",
    "load_config",
    "DimensionMismatch",
    "IndexCorruption",
    "NodeNotFound",
    "PlanTreeError",
    "PreconditionViolation",
    "SingularMatrix",
    "report_violations",
    "set_strict_validation",
    "STATE_TOLERANCE",
    "as_state",
    "distance",
    "states_equal",
]
