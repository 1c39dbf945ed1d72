"""
API Drift

Captures the public surface of every class in a Python source tree into a
baseline file, and reports new, changed and removed methods against it.
"""

from apidrift.drift import DriftEngine, DriftPolicy, UnknownClassPolicy, analyze_drift
from apidrift.exceptions import (
    ApiDriftError,
    BaselineCorruptError,
    BaselineNotFoundError,
    CaptureCancelledError,
    ClassResolutionError,
    ConfigError,
)
from apidrift.extractor import ReflectionSource, SyntaxSource, capture_tree, extract_class
from apidrift.models import BaselineSnapshot, ClassSignature, DriftReport
from apidrift.storage import BaselineStore, load_baseline, save_baseline

__all__ = [
    "ApiDriftError",
    "BaselineCorruptError",
    "BaselineNotFoundError",
    "BaselineSnapshot",
    "BaselineStore",
    "CaptureCancelledError",
    "ClassResolutionError",
    "ClassSignature",
    "ConfigError",
    "DriftEngine",
    "DriftPolicy",
    "DriftReport",
    "ReflectionSource",
    "SyntaxSource",
    "UnknownClassPolicy",
    "analyze_drift",
    "capture_tree",
    "extract_class",
    "load_baseline",
    "save_baseline",
]
__version__ = "0.1.0"
