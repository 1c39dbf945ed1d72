"""
Exceptions raised by the API drift core.

Only extraction and persistence raise. Comparison never does: an incomplete
baseline degrades to reporting more drift.
"""

from pathlib import Path
from typing import Optional


class ApiDriftError(Exception):
    """Base class for all API drift errors."""


class ClassResolutionError(ApiDriftError):
    """
    Raised when a class identity cannot be resolved to a class.

    Recoverable during a tree capture: the file is skipped and the run
    continues.

    Attributes:
        identity: The fully qualified class name that was attempted
        file_path: The file the identity was derived from, if known
        reason: Why resolution failed
    """

    def __init__(
        self,
        identity: str,
        file_path: Optional[str | Path] = None,
        reason: str = "",
    ) -> None:
        self.identity = identity
        self.file_path = str(file_path) if file_path is not None else None
        self.reason = reason
        message = f"Unable to load class '{identity}'"
        if self.file_path:
            message += f" by file '{self.file_path}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class BaselineNotFoundError(ApiDriftError):
    """Raised when the baseline document does not exist. Run a capture first."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(f"Baseline file not found at {self.path}")


class BaselineCorruptError(ApiDriftError):
    """Raised when the baseline document is not valid JSON."""

    def __init__(self, path: str | Path, detail: str) -> None:
        self.path = Path(path)
        self.detail = detail
        super().__init__(f"Baseline file {self.path} is not valid JSON: {detail}")


class CaptureCancelledError(ApiDriftError):
    """Raised when a tree capture is cancelled between files."""


class ConfigError(ApiDriftError):
    """Raised for an invalid ``[tool.apidrift]`` configuration."""
