"""
Storage module for API Drift.

This module provides JSON persistence for baseline snapshots, enabling drift
detection against a previously captured class API surface.
"""

from apidrift.storage.baseline import (
    DEFAULT_BASELINE_PATH,
    BaselineStore,
    load_baseline,
    save_baseline,
)

__all__ = [
    "DEFAULT_BASELINE_PATH",
    "BaselineStore",
    "load_baseline",
    "save_baseline",
]
