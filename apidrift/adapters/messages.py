"""
Reporting adapter interface and the built-in adapters.

A reporting adapter turns drift findings into a host tool's native
diagnostic type. Adapters only translate: they never compare signatures
themselves.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from apidrift.adapters.suggestions import suggest_for
from apidrift.models import ChangedMethod, ClassDrift, DriftFinding, FindingKind

T = TypeVar("T")

# Substrings every rendered message starts with; external tool output is
# filtered on these.
NEW_METHOD_MARKER = "New method"
CHANGED_METHOD_MARKER = "Method changed"
REMOVED_METHOD_MARKER = "Method removed"

DRIFT_MARKERS = (NEW_METHOD_MARKER, CHANGED_METHOD_MARKER, REMOVED_METHOD_MARKER)

ISSUE_CODES = {
    FindingKind.NEW_METHOD: "APD100",
    FindingKind.CHANGED_METHOD: "APD200",
    FindingKind.REMOVED_METHOD: "APD300",
}


def format_finding(class_name: str, finding: DriftFinding, suggestion: str = "") -> str:
    """
    Render one finding as a single-line message.

    A non-empty suggestion is appended after the message as a hint.

    Example:
        >>> format_finding("app.Foo", NewMethod("baz"))
        "New method 'baz' detected in class 'app.Foo'"
    """
    if finding.kind is FindingKind.NEW_METHOD:
        message = f"{NEW_METHOD_MARKER} '{finding.method_name}' detected in class '{class_name}'"
    elif finding.kind is FindingKind.REMOVED_METHOD:
        message = (
            f"{REMOVED_METHOD_MARKER}: '{finding.method_name}' "
            f"no longer exists in class '{class_name}'"
        )
    else:
        reasons = finding.reasons if isinstance(finding, ChangedMethod) else ()
        details = "; ".join(reason.describe() for reason in reasons)
        message = (
            f"{CHANGED_METHOD_MARKER}: '{finding.method_name}' in class '{class_name}': {details}"
        )
    return f"{message}. {suggestion}" if suggestion else message


def suggestion_for(drift: ClassDrift, finding: DriftFinding) -> str:
    """Advice for a finding, using the current signature of its method."""
    return suggest_for(finding, drift.class_name, drift.methods.get(finding.method_name))


@dataclass(frozen=True)
class Issue:
    """
    A located, rendered finding.

    Attributes:
        file_path: Source file of the class ("" when unknown)
        line: 1-indexed line of the method (1 when unknown)
        code: Issue code (APD100 new, APD200 changed, APD300 removed)
        message: Rendered message
        class_name: Fully qualified class name
        method_name: Method the finding is about
        kind: Finding kind
        suggestion: Advice on what to do about the finding ("" when none)
    """

    file_path: str
    line: int
    code: str
    message: str
    class_name: str
    method_name: str
    kind: FindingKind
    suggestion: str = ""

    def __str__(self) -> str:
        return f"{self.file_path}:{self.line}: {self.code} {self.message}"


class ReportingAdapter(ABC, Generic[T]):
    """
    Translates a ClassDrift into a host tool's native issue objects.

    Subclasses implement render_finding; render covers the whole class.
    """

    @abstractmethod
    def render_finding(self, drift: ClassDrift, finding: DriftFinding) -> T:
        """Render one finding of a class."""

    def render(self, drift: ClassDrift) -> list[T]:
        return [self.render_finding(drift, finding) for finding in drift.findings]


class MessageAdapter(ReportingAdapter[Issue]):
    """Renders findings as located Issue objects."""

    def render_finding(self, drift: ClassDrift, finding: DriftFinding) -> Issue:
        return Issue(
            file_path=drift.file_path or "",
            line=drift.line_of(finding.method_name),
            code=ISSUE_CODES[finding.kind],
            message=format_finding(drift.class_name, finding),
            class_name=drift.class_name,
            method_name=finding.method_name,
            kind=finding.kind,
            suggestion=suggestion_for(drift, finding),
        )


class JsonAdapter(ReportingAdapter[dict[str, Any]]):
    """Renders findings as JSON-ready dictionaries."""

    def render_finding(self, drift: ClassDrift, finding: DriftFinding) -> dict[str, Any]:
        data = finding.to_dict()
        data.update(
            {
                "file": drift.file_path,
                "line": drift.line_of(finding.method_name),
                "class": drift.class_name,
                "code": ISSUE_CODES[finding.kind],
                "message": format_finding(drift.class_name, finding),
                "suggestion": suggestion_for(drift, finding),
            }
        )
        return data
