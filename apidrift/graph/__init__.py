"""
Graph module for API Drift.

This module provides a NetworkX-based inheritance graph over a baseline
snapshot, used to find classes affected by a drifted base.
"""

from apidrift.graph.hierarchy import ClassHierarchy

__all__ = ["ClassHierarchy"]
