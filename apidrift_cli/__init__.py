"""
CLI module for API Drift.

The command-line interface providing capture, check, explain and tools
commands.
"""

from apidrift_cli.main import app

__all__ = ["app"]
