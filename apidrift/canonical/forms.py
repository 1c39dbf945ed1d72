"""
Canonical Forms for API Drift

Default values and type annotations reach the drift engine from two very
different places: live objects pulled out of an imported module, and source
text pulled out of a syntax tree. Neither is directly comparable with the
other, and live default values are not always serialisable. This module maps
both onto one canonical string form.

Default Value Forms:
    'text'      string literal (no escaping, quotes are always single)
    []          any list, tuple, dict or set literal (contents are ignored),
                or an empty constructor call such as dict()
    null        None
    true/false  booleans
    1, 1.5      numeric literal, normalised (1_000 -> 1000, 0x10 -> 16)
    Mode.FAST   enum member or named constant
    unknown     anything else (calls, f-strings, arbitrary objects)
    none        no default at all

Type Forms:
    - whitespace removed, string annotations and forward references unquoted
    - strings inside Literal[...] rendered with repr (Literal['a'])
    - module qualifiers dropped (typing.Optional[x.Foo] -> Optional[Foo])
    - two-member unions with None become nullable (Optional[int] -> ?int)
    - other unions are joined with '|' (Union[int, str] -> int|str)

Design Decisions:
    - Pure functions only: same input, same output
    - Lossy on purpose: only distinctions both introspection sources can
      observe survive canonicalisation
"""

import ast
import enum
import re
from typing import Any, Optional

import libcst as cst


NO_DEFAULT_FORM = "none"
NULL_FORM = "null"
CONTAINER_FORM = "[]"
UNKNOWN_FORM = "unknown"


class _Missing:
    """Sentinel type for 'no default value'."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()

_QUALIFIED_NAME = re.compile(r"\b(?:[A-Za-z_]\w*\.)+([A-Za-z_]\w*)")

_CONTAINER_NODES = (cst.List, cst.Tuple, cst.Dict, cst.Set)

_CONTAINER_CALLS = frozenset({"dict", "list", "set", "tuple", "frozenset"})

_FLOAT_WORDS = frozenset({"inf", "-inf", "infinity", "-infinity", "nan"})


def canonicalize_default(value: Any = MISSING) -> str:
    """
    Return the canonical form of a live default value.

    Args:
        value: The default value, or MISSING when the parameter has none

    Returns:
        The canonical string form

    Example:
        >>> canonicalize_default("z")
        "'z'"
        >>> canonicalize_default([1, 2])
        '[]'
    """
    if value is MISSING:
        return NO_DEFAULT_FORM
    if value is None:
        return NULL_FORM
    # bool before int: True is an int
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f"'{value}'"
    if isinstance(value, (int, float, complex)):
        return repr(value)
    if isinstance(value, (list, tuple, dict, set, frozenset)):
        return CONTAINER_FORM
    if isinstance(value, enum.Enum):
        return f"{type(value).__name__}.{value.name}"
    return UNKNOWN_FORM


def canonicalize_default_expression(code: Optional[str]) -> str:
    """
    Return the canonical form of a default value written as source text.

    Literals are evaluated with ``ast.literal_eval`` and then canonicalised
    exactly like live values, so ``"z"`` and ``'z'`` (or ``1_000`` and
    ``1000``) produce the same form. Names and attribute chains are kept as
    dotted constant names.

    Args:
        code: The default expression source, or None when there is no default

    Returns:
        The canonical string form
    """
    if code is None:
        return NO_DEFAULT_FORM

    try:
        node = cst.parse_expression(code)
    except cst.ParserSyntaxError:
        return UNKNOWN_FORM

    if isinstance(node, _CONTAINER_NODES):
        return CONTAINER_FORM
    if isinstance(node, cst.Call):
        return _canonicalize_call(node)

    try:
        value = ast.literal_eval(code.strip())
    except (ValueError, TypeError, SyntaxError, MemoryError, RecursionError):
        pass
    else:
        return canonicalize_default(value)

    if isinstance(node, (cst.Name, cst.Attribute)):
        return "".join(cst.Module(body=[]).code_for_node(node).split())

    return UNKNOWN_FORM


def _canonicalize_call(node: cst.Call) -> str:
    """Empty container constructors and float("inf") match their live values."""
    if not isinstance(node.func, cst.Name):
        return UNKNOWN_FORM
    if node.func.value in _CONTAINER_CALLS and not node.args:
        return CONTAINER_FORM
    if node.func.value == "float" and len(node.args) == 1:
        arg = node.args[0]
        if arg.keyword is None and not arg.star and isinstance(arg.value, cst.SimpleString):
            word = arg.value.evaluated_value
            if isinstance(word, str) and word.strip().lower() in _FLOAT_WORDS:
                return canonicalize_default(float(word))
    return UNKNOWN_FORM


def canonicalize_type(annotation: Optional[str]) -> str:
    """
    Return the canonical form of a type annotation written as text.

    Args:
        annotation: Annotation source text, or None when untyped

    Returns:
        The canonical type string, "" for untyped

    Example:
        >>> canonicalize_type("typing.Optional[ 'models.User' ]")
        '?User'
        >>> canonicalize_type("Union[int, str]")
        'int|str'
    """
    if annotation is None:
        return ""

    text = _unquote(_normalize_strings(annotation.strip()))
    text = "".join(text.split())
    if not text:
        return ""

    text = _QUALIFIED_NAME.sub(r"\1", text)
    text = text.replace("NoneType", "None")

    members = _union_members(text)
    if len(members) == 2 and "None" in members:
        other = members[0] if members[1] == "None" else members[1]
        return "?" + other
    return "|".join(members)


def _subscript_name(node: cst.Subscript) -> Optional[str]:
    if isinstance(node.value, cst.Name):
        return node.value.value
    if isinstance(node.value, cst.Attribute):
        return node.value.attr.value
    return None


class _AnnotationStrings(cst.CSTTransformer):
    """
    Gives string literals inside an annotation one spelling.

    Literal[...] values are re-rendered with repr, the way live annotations
    print them. Any other string is a forward reference and is unquoted, as
    is a ForwardRef('X') call.
    """

    def __init__(self) -> None:
        super().__init__()
        self._literal_depth = 0

    def visit_Subscript(self, node: cst.Subscript) -> bool:
        if _subscript_name(node) == "Literal":
            self._literal_depth += 1
        return True

    def leave_Subscript(
        self, original_node: cst.Subscript, updated_node: cst.Subscript
    ) -> cst.BaseExpression:
        if _subscript_name(original_node) == "Literal":
            self._literal_depth -= 1
        return updated_node

    def leave_SimpleString(
        self, original_node: cst.SimpleString, updated_node: cst.SimpleString
    ) -> cst.BaseExpression:
        value = updated_node.evaluated_value
        if self._literal_depth or not isinstance(value, str):
            return updated_node.with_changes(value=repr(value))
        try:
            reference = cst.parse_expression(value.strip())
        except cst.ParserSyntaxError:
            return updated_node.with_changes(value=repr(value))
        # The reference may itself hold strings: "Literal['a']"
        return reference.visit(_AnnotationStrings())

    def leave_Call(self, original_node: cst.Call, updated_node: cst.Call) -> cst.BaseExpression:
        func = updated_node.func
        name = func.attr.value if isinstance(func, cst.Attribute) else getattr(func, "value", None)
        if name == "ForwardRef" and updated_node.args:
            return updated_node.args[0].value
        return updated_node


def _normalize_strings(text: str) -> str:
    """Apply _AnnotationStrings; text that does not parse is returned unchanged."""
    if "'" not in text and '"' not in text:
        return text
    try:
        node = cst.parse_expression(text).visit(_AnnotationStrings())
    except (cst.ParserSyntaxError, cst.CSTValidationError):
        return text
    return cst.Module(body=[]).code_for_node(node)


def _unquote(text: str) -> str:
    """Strip one level of quotes from a string annotation."""
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"":
        return text[1:-1].strip()
    return text


def _union_members(text: str) -> list[str]:
    """Flatten Optional[...], Union[...] and '|' unions into their members."""
    inner = _generic_argument(text, "Optional")
    if inner is not None:
        return _union_members(inner) + ["None"]

    inner = _generic_argument(text, "Union")
    if inner is not None:
        members: list[str] = []
        for part in _split_top_level(inner, ","):
            members.extend(_union_members(part))
        return members

    parts = _split_top_level(text, "|")
    if len(parts) == 1:
        return [_unquote(parts[0])]
    members = []
    for part in parts:
        members.extend(_union_members(part))
    return members


def _generic_argument(text: str, name: str) -> Optional[str]:
    """Return the bracketed argument if text is exactly ``name[...]``."""
    prefix = name + "["
    if not (text.startswith(prefix) and text.endswith("]")):
        return None

    depth = 0
    for index, char in enumerate(text):
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0 and index != len(text) - 1:
                # Brackets close before the end: Optional[a][b]
                return None
    return text[len(prefix):-1]


def _split_top_level(text: str, separator: str) -> list[str]:
    """Split on a separator that is not nested inside brackets."""
    parts = []
    depth = 0
    current: list[str] = []
    for char in text:
        if char in "[(":
            depth += 1
        elif char in "])":
            depth -= 1
        if char == separator and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return [part for part in parts if part]
