"""
Canonical forms module for API Drift.

This module turns default values and type annotations from any introspection
source into stable, comparable strings.
"""

from apidrift.canonical.forms import (
    MISSING,
    NO_DEFAULT_FORM,
    canonicalize_default,
    canonicalize_default_expression,
    canonicalize_type,
)

__all__ = [
    "MISSING",
    "NO_DEFAULT_FORM",
    "canonicalize_default",
    "canonicalize_default_expression",
    "canonicalize_type",
]
