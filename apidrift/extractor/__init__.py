"""
Extractor module for API Drift.

This module builds ClassSignatures through one of two introspection sources
(LibCST syntax trees or live reflection) and captures whole source trees.
"""

from apidrift.extractor.extractor import (
    build_class_signature,
    capture_tree,
    create_source,
    extract_class,
    identify_class,
    iter_source_files,
    scan_file,
)
from apidrift.extractor.reflection import ReflectionSource
from apidrift.extractor.sources import (
    ClassIdentity,
    ClassView,
    IntrospectionSource,
    visibility_for_name,
)
from apidrift.extractor.syntax import SyntaxSource, inspect_class_source

__all__ = [
    "ClassIdentity",
    "ClassView",
    "IntrospectionSource",
    "ReflectionSource",
    "SyntaxSource",
    "build_class_signature",
    "capture_tree",
    "create_source",
    "extract_class",
    "identify_class",
    "inspect_class_source",
    "iter_source_files",
    "scan_file",
    "visibility_for_name",
]
