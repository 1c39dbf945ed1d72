"""
Test fixtures for API Drift.

This module provides sample class sources and helper functions for testing
extraction, capture and drift detection.
"""

from pathlib import Path

# Baseline and current versions of the same class
FOO_BASELINE = '''
class Foo:
    """A class with one method."""

    def bar(self, x: int = 1) -> None:
        pass
'''

FOO_CURRENT = '''
class Foo:
    """The same class, one parameter later."""

    def bar(self, x: int = 1, y: str = 'z') -> str:
        return y
'''

BAR_CLASS = '''
class Bar:
    def baz(self):
        pass
'''

# Class covering every member kind the extractor knows about
SERVICE_CLASS = '''
from abc import ABC
from functools import cached_property
from typing import ClassVar, Optional, overload

from app.base import BaseService
from app.mixins import LoggingMixin


class UserService(LoggingMixin, BaseService, ABC):
    """Manage users."""

    registry: ClassVar[dict] = {}
    timeout: float = 1.5
    retries = 3
    _cache: Optional[dict] = None

    def __init__(self, name: str, *args, **kwargs) -> None:
        self.name = name

    @overload
    def find(self, key: int) -> "User": ...

    @overload
    def find(self, key: str) -> "User": ...

    def find(self, key: "int | str", default=None) -> Optional["models.User"]:
        return None

    @staticmethod
    def normalize(value: str, *, strict: bool = False) -> str:
        return value

    @classmethod
    def create(cls, name: str = "anon") -> "UserService":
        return cls(name)

    @property
    def label(self) -> str:
        return self.name

    @label.setter
    def label(self, value: str) -> None:
        self.name = value

    @cached_property
    def size(self) -> int:
        return 0

    def _refresh(self, force: bool = True, mode=Mode.FAST, items=[1, 2]) -> None:
        pass

    def __secret(self, token=compute()):
        pass
'''

# Class redefining a method: the last definition wins
REDEFINED_METHOD = '''
class Twice:
    def run(self, a):
        pass

    def other(self):
        pass

    def run(self, a, b):
        pass
'''

NOT_A_CLASS = '''
def helper():
    return 42
'''

INCOMPLETE_SOURCE = '''
class Broken:
    def method(self
'''


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """
    Write a source tree.

    Args:
        root: Directory to write into
        files: Relative path -> file contents

    Returns:
        The root directory
    """
    for relative, contents in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(contents, encoding="utf-8")
    return root
