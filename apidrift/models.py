"""
Core Data Models for API Drift

This module defines the canonical data structures used throughout the system:
- ParameterSignature, MethodSignature, PropertySignature: member shapes
- ClassSignature: the externally observable shape of one class
- BaselineSnapshot: every captured class, keyed by fully qualified name
- DriftFinding / ChangeReason: what the drift engine reports
- CaptureResult, ClassDrift, DriftReport: run summaries

These models are designed to be:
- Immutable where possible (using frozen dataclasses)
- Compared only through canonical string forms, never raw language values
- Serializable to the durable baseline JSON format

Baseline Format (one class):
    {
        "methods": {
            "<name>": {
                "visibility": "public" | "protected" | "private",
                "static": bool,
                "parameters": {"<name>": {"type": str, "default_value": str}},
                "return_type": str
            }
        },
        "properties": {"<name>": {"visibility": str, "static": bool, "type": str}},
        "interfaces": [str],
        "traits": [str],
        "parent": str | null
    }

Loading is permissive. A missing key becomes None ("field absent"), which
compares unequal to any extracted value, so a damaged baseline produces more
drift instead of an error.
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Optional

from apidrift.canonical import NO_DEFAULT_FORM, canonicalize_default


class Visibility(Enum):
    """Member visibility, mapped from Python naming conventions."""

    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"


def _record(value: Any) -> dict:
    """Treat anything that is not a JSON object as an empty record."""
    return value if isinstance(value, dict) else {}


def _text(data: dict, key: str) -> Optional[str]:
    """Read a string field; absent -> None, null -> ""."""
    if key not in data:
        return None
    value = data[key]
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _flag(data: dict, key: str) -> Optional[bool]:
    value = data.get(key)
    return value if isinstance(value, bool) else None


def _visibility(data: dict) -> Optional[Visibility]:
    try:
        return Visibility(data.get("visibility"))
    except ValueError:
        return None


def _names(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item) for item in value if item is not None)


@dataclass(frozen=True)
class ParameterSignature:
    """
    One parameter of a method.

    Attributes:
        name: Parameter name, unique within its method. Variadics are
              recorded as "*args" and "**kwargs".
        annotation: Canonical type, "" when untyped, None when absent
                    from a loaded baseline
        default: Canonical default form ("none" when there is no default)
    """

    name: str
    annotation: Optional[str] = ""
    default: Optional[str] = NO_DEFAULT_FORM

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.annotation, "default_value": self.default}

    @classmethod
    def from_dict(cls, name: str, data: Any) -> "ParameterSignature":
        data = _record(data)
        if "default_value" not in data:
            default = None
        elif isinstance(data["default_value"], str):
            default = data["default_value"]
        else:
            # Older baselines stored raw default values
            default = canonicalize_default(data["default_value"])
        return cls(name=name, annotation=_text(data, "type"), default=default)


@dataclass(frozen=True)
class MethodSignature:
    """
    The signature of one method.

    Parameter order is significant for the count check and for reporting,
    but parameters are compared by name.

    Attributes:
        name: Method name, case-sensitive
        visibility: public / protected / private
        is_static: True for @staticmethod and @classmethod
        return_type: Canonical return annotation, "" when untyped
        parameters: Parameters in declaration order, receiver excluded
    """

    name: str
    visibility: Optional[Visibility] = Visibility.PUBLIC
    is_static: Optional[bool] = False
    return_type: Optional[str] = ""
    parameters: tuple[ParameterSignature, ...] = ()

    @property
    def parameter_names(self) -> list[str]:
        return [param.name for param in self.parameters]

    def parameter(self, name: str) -> Optional[ParameterSignature]:
        """Look up a parameter by name."""
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "visibility": self.visibility.value if self.visibility else None,
            "static": self.is_static,
            "parameters": {param.name: param.to_dict() for param in self.parameters},
            "return_type": self.return_type,
        }

    @classmethod
    def from_dict(cls, name: str, data: Any) -> "MethodSignature":
        data = _record(data)
        parameters = tuple(
            ParameterSignature.from_dict(str(param_name), param_data)
            for param_name, param_data in _record(data.get("parameters")).items()
        )
        return cls(
            name=name,
            visibility=_visibility(data),
            is_static=_flag(data, "static"),
            return_type=_text(data, "return_type"),
            parameters=parameters,
        )


@dataclass(frozen=True)
class PropertySignature:
    """A class-level attribute: annotated field, class variable or @property."""

    name: str
    visibility: Optional[Visibility] = Visibility.PUBLIC
    is_static: Optional[bool] = False
    annotation: Optional[str] = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "visibility": self.visibility.value if self.visibility else None,
            "static": self.is_static,
            "type": self.annotation,
        }

    @classmethod
    def from_dict(cls, name: str, data: Any) -> "PropertySignature":
        data = _record(data)
        return cls(
            name=name,
            visibility=_visibility(data),
            is_static=_flag(data, "static"),
            annotation=_text(data, "type"),
        )


@dataclass(frozen=True)
class ClassSignature:
    """
    The structural shape of one class.

    Attributes:
        name: Fully qualified name ("app.models.User"), the sole identity key
        methods: Method name -> signature, in declaration order
        properties: Property name -> signature
        interfaces: Implemented interface names, in declaration order
        traits: Mixin names
        parent: Parent class name, if any
        locations: Member name -> 1-indexed line. Not persisted and not
                   compared; adapters use it to place diagnostics.

    Invariants:
        - Two ClassSignatures are only compared under the same name
    """

    name: str
    methods: Mapping[str, MethodSignature] = field(default_factory=dict)
    properties: Mapping[str, PropertySignature] = field(default_factory=dict)
    interfaces: tuple[str, ...] = ()
    traits: tuple[str, ...] = ()
    parent: Optional[str] = None
    locations: Mapping[str, int] = field(
        default_factory=dict, compare=False, repr=False
    )

    @property
    def short_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    @property
    def namespace(self) -> str:
        return self.name.rsplit(".", 1)[0] if "." in self.name else ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "methods": {name: m.to_dict() for name, m in self.methods.items()},
            "properties": {name: p.to_dict() for name, p in self.properties.items()},
            "interfaces": list(self.interfaces),
            "traits": list(self.traits),
            "parent": self.parent,
        }

    @classmethod
    def from_dict(cls, name: str, data: Any) -> "ClassSignature":
        data = _record(data)
        parent = data.get("parent")
        return cls(
            name=name,
            methods={
                str(method_name): MethodSignature.from_dict(str(method_name), method_data)
                for method_name, method_data in _record(data.get("methods")).items()
            },
            properties={
                str(prop_name): PropertySignature.from_dict(str(prop_name), prop_data)
                for prop_name, prop_data in _record(data.get("properties")).items()
            },
            interfaces=_names(data.get("interfaces")),
            traits=_names(data.get("traits")),
            parent=parent if isinstance(parent, str) else None,
        )


class BaselineSnapshot(Mapping[str, ClassSignature]):
    """
    Every captured class, keyed by fully qualified name.

    A snapshot is never mutated in place: a new capture builds a new
    snapshot, and the store swaps it in whole.

    Usage:
        snapshot = BaselineSnapshot.from_classes([sig_a, sig_b])
        baseline = snapshot.get("app.models.User")
    """

    def __init__(self, classes: Optional[Mapping[str, ClassSignature]] = None) -> None:
        self._classes = MappingProxyType(dict(classes or {}))

    @classmethod
    def from_classes(cls, classes: Iterable[ClassSignature]) -> "BaselineSnapshot":
        """Build a snapshot; later classes win over earlier ones with the same name."""
        return cls({signature.name: signature for signature in classes})

    def __getitem__(self, name: str) -> ClassSignature:
        return self._classes[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._classes)

    def __len__(self) -> int:
        return len(self._classes)

    def __repr__(self) -> str:
        return f"BaselineSnapshot({len(self)} classes)"

    def to_dict(self) -> dict[str, Any]:
        return {name: signature.to_dict() for name, signature in self._classes.items()}

    @classmethod
    def from_dict(cls, data: Any) -> "BaselineSnapshot":
        return cls(
            {
                str(name): ClassSignature.from_dict(str(name), class_data)
                for name, class_data in _record(data).items()
            }
        )


class FindingKind(Enum):
    """Top-level kind of a drift finding."""

    NEW_METHOD = "new_method"
    REMOVED_METHOD = "removed_method"
    CHANGED_METHOD = "changed_method"


class ReasonKind(Enum):
    """Why a method counts as changed."""

    VISIBILITY_CHANGED = "visibility_changed"
    STATIC_MODIFIER_CHANGED = "static_modifier_changed"
    RETURN_TYPE_CHANGED = "return_type_changed"
    PARAMETER_COUNT_CHANGED = "parameter_count_changed"
    PARAMETER_ADDED = "parameter_added"
    PARAMETER_REMOVED = "parameter_removed"
    PARAMETER_TYPE_CHANGED = "parameter_type_changed"
    PARAMETER_DEFAULT_CHANGED = "parameter_default_changed"


def _show(value: Any) -> str:
    """Render a compared value for a human."""
    if value is None:
        return "(absent)"
    if isinstance(value, Visibility):
        return value.value
    if value == "":
        return "(none)"
    return str(value)


@dataclass(frozen=True)
class ChangeReason:
    """Base class of all method change reasons."""

    kind: ClassVar[ReasonKind]

    def describe(self) -> str:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"kind": self.kind.value}
        for name, value in self.__dict__.items():
            data[name] = value.value if isinstance(value, Visibility) else value
        return data


@dataclass(frozen=True)
class VisibilityChanged(ChangeReason):
    kind: ClassVar[ReasonKind] = ReasonKind.VISIBILITY_CHANGED
    old: Optional[Visibility]
    new: Optional[Visibility]

    def describe(self) -> str:
        return f"visibility changed from {_show(self.old)} to {_show(self.new)}"


@dataclass(frozen=True)
class StaticModifierChanged(ChangeReason):
    kind: ClassVar[ReasonKind] = ReasonKind.STATIC_MODIFIER_CHANGED
    new: Optional[bool]

    def describe(self) -> str:
        return "static modifier changed to " + ("static" if self.new else "non-static")


@dataclass(frozen=True)
class ReturnTypeChanged(ChangeReason):
    kind: ClassVar[ReasonKind] = ReasonKind.RETURN_TYPE_CHANGED
    old: Optional[str]
    new: Optional[str]

    def describe(self) -> str:
        return f"return type changed from {_show(self.old)} to {_show(self.new)}"


@dataclass(frozen=True)
class ParameterCountChanged(ChangeReason):
    kind: ClassVar[ReasonKind] = ReasonKind.PARAMETER_COUNT_CHANGED
    old: int
    new: int

    def describe(self) -> str:
        return f"number of parameters changed from {self.old} to {self.new}"


@dataclass(frozen=True)
class ParameterAdded(ChangeReason):
    kind: ClassVar[ReasonKind] = ReasonKind.PARAMETER_ADDED
    name: str

    def describe(self) -> str:
        return f"parameter '{self.name}' added"


@dataclass(frozen=True)
class ParameterRemoved(ChangeReason):
    kind: ClassVar[ReasonKind] = ReasonKind.PARAMETER_REMOVED
    name: str

    def describe(self) -> str:
        return f"parameter '{self.name}' removed"


@dataclass(frozen=True)
class ParameterTypeChanged(ChangeReason):
    kind: ClassVar[ReasonKind] = ReasonKind.PARAMETER_TYPE_CHANGED
    name: str
    old: Optional[str]
    new: Optional[str]

    def describe(self) -> str:
        return (
            f"type of parameter '{self.name}' changed "
            f"from {_show(self.old)} to {_show(self.new)}"
        )


@dataclass(frozen=True)
class ParameterDefaultChanged(ChangeReason):
    kind: ClassVar[ReasonKind] = ReasonKind.PARAMETER_DEFAULT_CHANGED
    name: str
    old: Optional[str] = None
    new: Optional[str] = None

    def describe(self) -> str:
        return (
            f"default value of parameter '{self.name}' changed "
            f"from {_show(self.old)} to {_show(self.new)}"
        )


@dataclass(frozen=True)
class DriftFinding:
    """Base class of all drift findings. One finding is about one method."""

    kind: ClassVar[FindingKind]
    method_name: str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "method": self.method_name}


@dataclass(frozen=True)
class NewMethod(DriftFinding):
    """A method that is not in the baseline."""

    kind: ClassVar[FindingKind] = FindingKind.NEW_METHOD


@dataclass(frozen=True)
class RemovedMethod(DriftFinding):
    """A baseline method that no longer exists."""

    kind: ClassVar[FindingKind] = FindingKind.REMOVED_METHOD


@dataclass(frozen=True)
class ChangedMethod(DriftFinding):
    """A method whose signature differs from the baseline, with every reason."""

    kind: ClassVar[FindingKind] = FindingKind.CHANGED_METHOD
    reasons: tuple[ChangeReason, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["reasons"] = [reason.to_dict() for reason in self.reasons]
        return data


@dataclass
class CaptureResult:
    """
    Result of capturing a baseline over a source tree.

    Attributes:
        snapshot: The freshly built snapshot
        files_scanned: Number of source files visited
        skipped: (file, reason) for every file that produced no class
        duplicates: Fully qualified names seen more than once
        scan_time_seconds: Total time taken for the capture
    """

    snapshot: BaselineSnapshot = field(default_factory=BaselineSnapshot)
    files_scanned: int = 0
    skipped: list[tuple[str, str]] = field(default_factory=list)
    duplicates: list[str] = field(default_factory=list)
    scan_time_seconds: float = 0.0

    @property
    def class_count(self) -> int:
        return len(self.snapshot)

    @property
    def skip_count(self) -> int:
        return len(self.skipped)


@dataclass
class ClassDrift:
    """
    Drift findings for one class.

    Attributes:
        class_name: Fully qualified class name
        findings: Findings in report order
        file_path: Source file of the current class, if known
        known: False when the class has no baseline entry
        locations: Method name -> line, for rendering
        methods: Current method signatures, for suggestions
    """

    class_name: str
    findings: list[DriftFinding] = field(default_factory=list)
    file_path: Optional[str] = None
    known: bool = True
    locations: Mapping[str, int] = field(default_factory=dict)
    methods: Mapping[str, MethodSignature] = field(default_factory=dict, repr=False)

    @property
    def has_drift(self) -> bool:
        return len(self.findings) > 0

    def line_of(self, method_name: str) -> int:
        """Line of a method in the current source, 1 when unknown."""
        return self.locations.get(method_name, 1)


@dataclass
class DriftReport:
    """
    Summary of drift analysis across many classes.

    Attributes:
        classes_checked: Number of classes compared
        unknown_classes: Classes with no baseline entry
        drifts: Per-class results that contain at least one finding
    """

    classes_checked: int = 0
    unknown_classes: list[str] = field(default_factory=list)
    drifts: list[ClassDrift] = field(default_factory=list)

    def _count(self, kind: FindingKind) -> int:
        return sum(
            1 for drift in self.drifts for finding in drift.findings if finding.kind is kind
        )

    @property
    def new_count(self) -> int:
        return self._count(FindingKind.NEW_METHOD)

    @property
    def removed_count(self) -> int:
        return self._count(FindingKind.REMOVED_METHOD)

    @property
    def changed_count(self) -> int:
        return self._count(FindingKind.CHANGED_METHOD)

    @property
    def total_findings(self) -> int:
        return sum(len(drift.findings) for drift in self.drifts)

    @property
    def has_drift(self) -> bool:
        return self.total_findings > 0
