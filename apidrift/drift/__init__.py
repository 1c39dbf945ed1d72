"""
Drift detection module for API Drift.

This module compares current class signatures against a baseline snapshot
and reports new, removed and changed methods.
"""

from apidrift.drift.engine import (
    DEFAULT_POLICY,
    DriftEngine,
    DriftPolicy,
    UnknownClassPolicy,
    analyze_drift,
    diff_class,
    diff_method,
)

__all__ = [
    "DEFAULT_POLICY",
    "DriftEngine",
    "DriftPolicy",
    "UnknownClassPolicy",
    "analyze_drift",
    "diff_class",
    "diff_method",
]
