"""
Introspection source interface shared by the syntax and reflection sources.

Both sources answer one question for a class identity: what methods,
properties and bases does it declare? The extractor turns the answer into a
ClassSignature, so both sources produce the same Signature Model.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol

from apidrift.models import MethodSignature, PropertySignature, Visibility


@dataclass(frozen=True)
class ClassIdentity:
    """
    Where to find a class.

    Attributes:
        namespace: Dotted module path ("app.models")
        class_name: Simple class name ("User")
        file_path: Source file the identity was derived from, if any
    """

    namespace: str
    class_name: str
    file_path: Optional[Path] = None

    @property
    def qualified_name(self) -> str:
        if not self.namespace:
            return self.class_name
        return f"{self.namespace}.{self.class_name}"

    @classmethod
    def from_qualified_name(
        cls, qualified_name: str, file_path: Optional[Path] = None
    ) -> "ClassIdentity":
        namespace, _, class_name = qualified_name.rpartition(".")
        return cls(namespace=namespace, class_name=class_name, file_path=file_path)


@dataclass
class ClassView:
    """
    Raw members of a class as one introspection source sees them.

    This is an intermediate representation before creating a ClassSignature.
    Methods and properties are in declaration order and may contain
    duplicates; the last definition wins, as it does at runtime.

    Attributes:
        methods: Method signatures
        properties: Property signatures
        bases: Canonical base class names, in declaration order
        locations: Member name -> 1-indexed line
    """

    methods: list[MethodSignature] = field(default_factory=list)
    properties: list[PropertySignature] = field(default_factory=list)
    bases: list[str] = field(default_factory=list)
    locations: dict[str, int] = field(default_factory=dict)


class IntrospectionSource(Protocol):
    """
    Capability to describe a class by identity.

    Implementations:
        SyntaxSource: parses the identity's file with LibCST
        ReflectionSource: imports the module and uses ``inspect``

    Raises:
        ClassResolutionError: from inspect_class, when the identity cannot
            be resolved to a class
    """

    name: str

    def inspect_class(self, identity: ClassIdentity) -> ClassView:
        ...


def visibility_for_name(name: str) -> Visibility:
    """
    Map a Python member name onto a visibility.

    Example:
        >>> visibility_for_name("__secret").value
        'private'
        >>> visibility_for_name("__init__").value
        'public'
    """
    if name.startswith("__") and not name.endswith("__"):
        return Visibility.PRIVATE
    if name.startswith("_") and not name.startswith("__"):
        return Visibility.PROTECTED
    return Visibility.PUBLIC


INTERFACE_NAMES = frozenset({"ABC", "Protocol", "Generic"})


def is_trait(base: str) -> bool:
    return base.endswith("Mixin")


def is_interface(base: str) -> bool:
    return (
        base in INTERFACE_NAMES
        or base.endswith("Protocol")
        or base.endswith("Interface")
    )
