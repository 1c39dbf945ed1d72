"""
Suggestions for API Drift Findings

Attaches a short piece of advice to each finding, so a report says what to
do about a change and not only what changed.

Advice comes from two places:
    - The change itself: widened or narrowed visibility, return and parameter
      types added, dropped or replaced, new parameters without defaults
    - The kind of class, guessed from its module path: a new method on
      something under ``views`` gets different advice than one under
      ``tasks`` or ``repositories``

Class Kinds:
    The first namespace segment found in KIND_SEGMENTS decides the kind, so
    ``app.api.views.orders.OrderView`` is a view and
    ``app.models.order.Order`` is a model. Anything else is GENERIC.

Design Decisions:
    - Advisory only: suggestions never change which findings are reported
    - Pure functions over models; no source access, so suggestions look the
      same whichever introspection source produced the signature
    - Empty string when there is nothing useful to say
"""

from enum import Enum
from typing import Optional

from apidrift.canonical import NO_DEFAULT_FORM
from apidrift.models import (
    ChangedMethod,
    ChangeReason,
    DriftFinding,
    FindingKind,
    MethodSignature,
    ParameterAdded,
    ParameterDefaultChanged,
    ParameterRemoved,
    ParameterTypeChanged,
    ReturnTypeChanged,
    StaticModifierChanged,
    Visibility,
    VisibilityChanged,
)

MANY_PARAMETERS = 3


class ClassKind(Enum):
    """Role of a class, guessed from the package it lives in."""

    VIEW = "view"
    MODEL = "model"
    COMMAND = "command"
    TASK = "task"
    EVENT = "event"
    HANDLER = "handler"
    POLICY = "policy"
    VALIDATOR = "validator"
    SERVICE = "service"
    REPOSITORY = "repository"
    ACTION = "action"
    GENERIC = "generic"


KIND_SEGMENTS = {
    "views": ClassKind.VIEW,
    "controllers": ClassKind.VIEW,
    "endpoints": ClassKind.VIEW,
    "routes": ClassKind.VIEW,
    "models": ClassKind.MODEL,
    "commands": ClassKind.COMMAND,
    "management": ClassKind.COMMAND,
    "tasks": ClassKind.TASK,
    "jobs": ClassKind.TASK,
    "workers": ClassKind.TASK,
    "events": ClassKind.EVENT,
    "handlers": ClassKind.HANDLER,
    "listeners": ClassKind.HANDLER,
    "receivers": ClassKind.HANDLER,
    "permissions": ClassKind.POLICY,
    "policies": ClassKind.POLICY,
    "validators": ClassKind.VALIDATOR,
    "rules": ClassKind.VALIDATOR,
    "services": ClassKind.SERVICE,
    "repositories": ClassKind.REPOSITORY,
    "actions": ClassKind.ACTION,
}

_REQUEST_HANDLERS = frozenset(
    {
        "get", "post", "put", "patch", "delete", "head", "options",
        "list", "retrieve", "create", "update", "partial_update", "destroy",
    }
)
_MODEL_HOOKS = frozenset({"save", "delete", "clean", "full_clean", "__str__"})
_POLICY_CHECKS = frozenset(
    {"has_permission", "has_object_permission", "view", "create", "update", "delete"}
)
_REPOSITORY_METHODS = frozenset({"all", "get", "find", "add", "create", "update", "delete"})
_ENTRY_POINTS = frozenset({"run", "handle", "execute", "__call__"})


def determine_class_kind(class_name: str) -> ClassKind:
    """
    Guess the role of a class from its fully qualified name.

    Example:
        >>> determine_class_kind("app.models.user.User")
        <ClassKind.MODEL: 'model'>
    """
    for segment in class_name.split(".")[:-1]:
        kind = KIND_SEGMENTS.get(segment)
        if kind is not None:
            return kind
    return ClassKind.GENERIC


def _is_typed(annotation: Optional[str]) -> bool:
    return bool(annotation)


def suggest_visibility(old: Optional[Visibility], new: Optional[Visibility]) -> str:
    """Advice for a visibility change."""
    if old is Visibility.PRIVATE and new is Visibility.PROTECTED:
        return "Use protected only if subclasses need access; otherwise keep it private."
    if old is Visibility.PRIVATE and new is Visibility.PUBLIC:
        return (
            "This adds the method to the public API; "
            "prefer protected if only subclasses need it."
        )
    if old is Visibility.PROTECTED and new is Visibility.PUBLIC:
        return "Keep it protected if possible to maintain encapsulation."
    if old is Visibility.PUBLIC and new in (Visibility.PROTECTED, Visibility.PRIVATE):
        return "Keep it public if this method is part of the class's public API."
    return ""


def suggest_return_type(old: Optional[str], new: Optional[str]) -> str:
    """Advice for a return type change. Untyped is "" (or None when absent)."""
    if not _is_typed(old) and _is_typed(new):
        return (
            "Adding a return type is good for type safety, "
            "but make sure existing callers agree with it."
        )
    if _is_typed(old) and not _is_typed(new):
        return "Consider keeping the return type for better type safety."
    if old == "None":
        return "The method now returns a value; make sure all calling code is updated."
    if new == "None":
        return "The method no longer returns a value; make sure all calling code is updated."
    return "Make sure this change is compatible with all calling code."


def suggest_parameter_type(old: Optional[str], new: Optional[str]) -> str:
    """Advice for a parameter type change."""
    if not _is_typed(old) and _is_typed(new):
        return (
            "Adding a type is good for type safety, "
            "but make sure existing callers pass matching values."
        )
    if _is_typed(old) and not _is_typed(new):
        return "Consider keeping the type for better type safety."
    if old != new:
        return (
            "Make sure this change is compatible with all calling code. "
            "Consider a union type if several types are valid."
        )
    return ""


def _suggest_for_reason(reason: ChangeReason, method: Optional[MethodSignature]) -> str:
    if isinstance(reason, VisibilityChanged):
        return suggest_visibility(reason.old, reason.new)
    if isinstance(reason, ReturnTypeChanged):
        return suggest_return_type(reason.old, reason.new)
    if isinstance(reason, ParameterTypeChanged):
        return suggest_parameter_type(reason.old, reason.new)
    if isinstance(reason, StaticModifierChanged):
        if reason.new:
            return "The method can no longer use self; callers on instances still work."
        return "Calls made on the class itself, Class.method(...), will now fail."
    if isinstance(reason, ParameterAdded):
        param = method.parameter(reason.name) if method is not None else None
        if param is not None and (param.default or NO_DEFAULT_FORM) != NO_DEFAULT_FORM:
            return ""
        if reason.name.startswith("*"):
            return ""
        return f"Give '{reason.name}' a default value so existing callers keep working."
    if isinstance(reason, ParameterRemoved):
        return f"Callers passing '{reason.name}' will break; consider deprecating it first."
    if isinstance(reason, ParameterDefaultChanged):
        return f"Callers relying on the old default of '{reason.name}' will behave differently."
    return ""


def _kind_suggestions(
    kind: ClassKind, name: str, method: Optional[MethodSignature]
) -> list[str]:
    """Advice for a new method that depends on the kind of class."""
    suggestions = []
    param_count = len(method.parameters) if method is not None else 0

    if kind is ClassKind.VIEW:
        if name in _REQUEST_HANDLERS:
            suggestions.append(
                "This is a standard request handler. "
                "Make sure it follows REST conventions and returns a proper response."
            )
        else:
            suggestions.append(
                "This is a custom view method. Consider whether it fits REST "
                "conventions or belongs in a service class."
            )
        if param_count > MANY_PARAMETERS:
            suggestions.append(
                "This method has many parameters. "
                "Consider a form or serializer for validation and data handling."
            )
    elif kind is ClassKind.MODEL:
        if name in _MODEL_HOOKS:
            suggestions.append(
                "This overrides a model lifecycle hook. "
                "Call super() and be careful about putting too much logic here."
            )
        elif name.startswith(("for_", "with_")):
            suggestions.append(
                "This looks like a query helper. "
                "Consider a custom manager or query set so it stays chainable."
            )
    elif kind is ClassKind.COMMAND:
        if name == "handle":
            suggestions.append("This is the command entry point. Keep argument parsing out of it.")
        elif name == "add_arguments":
            suggestions.append("Declare the command's options here and nothing else.")
    elif kind is ClassKind.TASK:
        if name in _ENTRY_POINTS:
            suggestions.append(
                "This is the main method for task execution. Keep it focused on a "
                "single responsibility and break it down if it grows too complex."
            )
    elif kind is ClassKind.EVENT:
        if name == "__init__":
            suggestions.append(
                "This is the event constructor. Pass in only the data the event needs."
            )
    elif kind is ClassKind.HANDLER:
        if name in _ENTRY_POINTS:
            suggestions.append(
                "This is the main method for event handling. Keep it focused and "
                "move heavy work to a background task."
            )
    elif kind is ClassKind.POLICY:
        if name in _POLICY_CHECKS:
            suggestions.append(
                "This is a standard permission check. "
                "Make sure it returns a bool and checks the user's permissions."
            )
    elif kind is ClassKind.VALIDATOR:
        if name in ("validate", "__call__"):
            suggestions.append(
                "This is the main validation method. "
                "Make sure it rejects invalid input consistently."
            )
        elif name == "message":
            suggestions.append("This method should return the error message for failed validation.")
    elif kind is ClassKind.SERVICE:
        suggestions.append(
            "This is a service method. Make sure it encapsulates one piece of "
            "business logic that fits the service's responsibility."
        )
    elif kind is ClassKind.REPOSITORY:
        if name in _REPOSITORY_METHODS:
            suggestions.append(
                "This is a common repository method. "
                "Make sure it talks to storage the same way the others do."
            )
        else:
            suggestions.append(
                "This is a custom repository method. "
                "Make sure it has a single responsibility that fits the repository."
            )
    elif kind is ClassKind.ACTION:
        if name == "__init__":
            suggestions.append(
                "This is the action's constructor. Inject the dependencies the action needs."
            )
        elif name in _ENTRY_POINTS:
            suggestions.append(
                "This is the main method of the action. "
                "Make sure it performs a single, well-defined operation."
            )
            if param_count > MANY_PARAMETERS:
                suggestions.append(
                    "This action has many parameters. Consider a dataclass for its input."
                )
            if method is not None and not method.return_type:
                suggestions.append("Consider adding a return type to this method.")
        elif method is not None and method.visibility is Visibility.PUBLIC:
            suggestions.append(
                "Public methods other than the entry point are unusual on an action. "
                "Consider a leading underscore if it is only used internally."
            )

    return suggestions


def suggest_for_new_method(class_name: str, name: str, method: Optional[MethodSignature]) -> str:
    """Advice for a method that is not in the baseline."""
    suggestions = _kind_suggestions(determine_class_kind(class_name), name, method)
    if method is not None:
        if method.visibility is Visibility.PRIVATE:
            suggestions.append(
                "This is a private method. Make sure it is only used within this class "
                "and consider whether it could be extracted to a separate class."
            )
        if method.is_static:
            suggestions.append(
                "This is a static method. Consider whether a module-level function "
                "or a service class would provide it better."
            )
        if method.return_type == "None":
            suggestions.append(
                "This method returns None. Make sure its effect on state is clear, "
                "or consider returning a result."
            )
    return " ".join(suggestions)


def suggest_for(
    finding: DriftFinding,
    class_name: str,
    method: Optional[MethodSignature] = None,
) -> str:
    """
    Return advice for one finding.

    Args:
        finding: The finding
        class_name: Fully qualified name of the class it belongs to
        method: Current signature of the method, when it still exists

    Returns:
        One or more sentences, or "" when there is no advice
    """
    if finding.kind is FindingKind.NEW_METHOD:
        return suggest_for_new_method(class_name, finding.method_name, method)
    if finding.kind is FindingKind.REMOVED_METHOD:
        return "Callers of this method will break; consider deprecating it before removing it."

    reasons = finding.reasons if isinstance(finding, ChangedMethod) else ()
    suggestions: list[str] = []
    for reason in reasons:
        text = _suggest_for_reason(reason, method)
        if text and text not in suggestions:
            suggestions.append(text)
    return " ".join(suggestions)
