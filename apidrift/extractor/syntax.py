"""
LibCST-based Introspection Source

Describes a class by parsing its source file, without importing anything.
This is the default source: it works on code that cannot be imported (missing
dependencies, side effects at import time) and never executes user code.

Key Components:
    - ClassMemberCollector: CST visitor that finds one class and reads its body
    - SyntaxSource: IntrospectionSource backed by the collector
    - inspect_class_source: entry point for string-based inspection

Design Decisions:
    - Uses LibCST (not ast) so annotations and defaults can be rendered back
      to source text exactly as written, then canonicalised
    - Only the class body is read; inherited members belong to the parent's
      own entry
    - @overload stubs and property setters/deleters are not members of their own

Limitation: Cannot see members created at runtime (setattr, metaclasses).
"""

from pathlib import Path
from typing import Optional, Sequence

import libcst as cst
from libcst.metadata import MetadataWrapper, PositionProvider

from apidrift.canonical import (
    NO_DEFAULT_FORM,
    canonicalize_default_expression,
    canonicalize_type,
)
from apidrift.exceptions import ClassResolutionError
from apidrift.extractor.sources import ClassIdentity, ClassView, visibility_for_name
from apidrift.models import MethodSignature, ParameterSignature, PropertySignature


_EMPTY_MODULE = cst.Module(body=[])

_PROPERTY_DECORATORS = frozenset(
    {"property", "cached_property", "functools.cached_property"}
)
_OVERLOAD_DECORATORS = frozenset({"overload", "typing.overload"})


def _code(node: cst.CSTNode) -> str:
    return _EMPTY_MODULE.code_for_node(node)


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


class ClassMemberCollector(cst.CSTVisitor):
    """
    CST Visitor that locates one class definition and collects its members.

    The first ClassDef with the requested name wins, wherever it is nested.

    Usage:
        wrapper = MetadataWrapper(module)
        collector = ClassMemberCollector("User")
        wrapper.visit(collector)
        view = collector.view  # None if the class was not found
    """

    METADATA_DEPENDENCIES = (PositionProvider,)

    def __init__(self, class_name: str) -> None:
        self.class_name = class_name
        self.view: Optional[ClassView] = None

    def visit_ClassDef(self, node: cst.ClassDef) -> bool:
        if self.view is not None or node.name.value != self.class_name:
            return True

        view = ClassView()
        view.bases = self._bases(node)
        for statement in self._statements(node):
            if isinstance(statement, cst.FunctionDef):
                self._add_function(statement, view)
            elif isinstance(statement, (cst.SimpleStatementLine, cst.SimpleStatementSuite)):
                for small in statement.body:
                    self._add_attribute(small, statement, view)
        self.view = view
        return False

    def _line(self, node: cst.CSTNode) -> int:
        try:
            return self.get_metadata(PositionProvider, node).start.line
        except KeyError:
            return 0

    @staticmethod
    def _statements(node: cst.ClassDef) -> Sequence[cst.CSTNode]:
        if isinstance(node.body, cst.IndentedBlock):
            return node.body.body
        # One-line class: "class A: x = 1"
        return [node.body]

    @staticmethod
    def _bases(node: cst.ClassDef) -> list[str]:
        bases = []
        for arg in node.bases:
            if arg.keyword is not None or arg.star:
                continue
            value = arg.value
            if isinstance(value, cst.Subscript):
                # Generic[T] and Base[int] are recorded without their arguments
                value = value.value
            name = canonicalize_type(_code(value))
            if name and name != "object":
                bases.append(name)
        return bases

    @staticmethod
    def _decorator_names(node: cst.FunctionDef) -> set[str]:
        names = set()
        for decorator in node.decorators:
            expression = decorator.decorator
            if isinstance(expression, cst.Call):
                expression = expression.func
            names.add("".join(_code(expression).split()))
        return names

    def _add_function(self, node: cst.FunctionDef, view: ClassView) -> None:
        name = node.name.value
        decorators = self._decorator_names(node)

        if decorators & _OVERLOAD_DECORATORS:
            return
        if any(d.endswith((".setter", ".deleter")) for d in decorators):
            return

        return_type = canonicalize_type(_code(node.returns.annotation)) if node.returns else ""
        view.locations[name] = self._line(node)

        if decorators & _PROPERTY_DECORATORS:
            view.properties.append(
                PropertySignature(
                    name=name,
                    visibility=visibility_for_name(name),
                    is_static=False,
                    annotation=return_type,
                )
            )
            return

        is_static = "staticmethod" in decorators or "classmethod" in decorators
        view.methods.append(
            MethodSignature(
                name=name,
                visibility=visibility_for_name(name),
                is_static=is_static,
                return_type=return_type,
                parameters=self._parameters(
                    node.params, skip_receiver="staticmethod" not in decorators
                ),
            )
        )

    @staticmethod
    def _parameters(params: cst.Parameters, skip_receiver: bool) -> tuple[ParameterSignature, ...]:
        positional = list(params.posonly_params) + list(params.params)
        if skip_receiver and positional:
            positional = positional[1:]

        ordered: list[tuple[str, cst.Param]] = [("", param) for param in positional]
        if isinstance(params.star_arg, cst.Param):
            ordered.append(("*", params.star_arg))
        ordered.extend(("", param) for param in params.kwonly_params)
        if params.star_kwarg is not None:
            ordered.append(("**", params.star_kwarg))

        signatures = []
        for prefix, param in ordered:
            annotation = ""
            if param.annotation is not None:
                annotation = canonicalize_type(_code(param.annotation.annotation))
            default = NO_DEFAULT_FORM
            if param.default is not None:
                default = canonicalize_default_expression(_code(param.default))
            signatures.append(
                ParameterSignature(
                    name=prefix + param.name.value,
                    annotation=annotation,
                    default=default,
                )
            )
        return tuple(signatures)

    def _add_attribute(
        self,
        small: cst.BaseSmallStatement,
        statement: cst.CSTNode,
        view: ClassView,
    ) -> None:
        if isinstance(small, cst.AnnAssign) and isinstance(small.target, cst.Name):
            name = small.target.value
            if _is_dunder(name):
                return
            annotation = canonicalize_type(_code(small.annotation.annotation))
            view.properties.append(
                PropertySignature(
                    name=name,
                    visibility=visibility_for_name(name),
                    is_static=annotation.startswith("ClassVar"),
                    annotation=annotation,
                )
            )
            view.locations[name] = self._line(statement)
        elif isinstance(small, cst.Assign):
            for target in small.targets:
                if not isinstance(target.target, cst.Name):
                    continue
                name = target.target.value
                if _is_dunder(name):
                    continue
                view.properties.append(
                    PropertySignature(
                        name=name,
                        visibility=visibility_for_name(name),
                        is_static=True,
                        annotation="",
                    )
                )
                view.locations[name] = self._line(statement)


def inspect_class_source(
    source: str,
    identity: ClassIdentity,
) -> ClassView:
    """
    Describe one class from Python source code.

    Args:
        source: Python source code as a string
        identity: Which class to describe; only class_name is used for lookup

    Returns:
        The ClassView for the first class with that name

    Raises:
        ClassResolutionError: If the source does not parse or has no such class

    Example:
        >>> identity = ClassIdentity("app", "Foo")
        >>> view = inspect_class_source("class Foo:\\n    def bar(self, x: int = 1): ...", identity)
        >>> [p.name for p in view.methods[0].parameters]
        ['x']
    """
    try:
        module = cst.parse_module(source)
    except cst.ParserSyntaxError as e:
        raise ClassResolutionError(
            identity.qualified_name, identity.file_path, f"syntax error: {e.message}"
        ) from e

    wrapper = MetadataWrapper(module)
    collector = ClassMemberCollector(identity.class_name.rsplit(".", 1)[-1])
    wrapper.visit(collector)

    if collector.view is None:
        raise ClassResolutionError(
            identity.qualified_name, identity.file_path, "class definition not found"
        )
    return collector.view


class SyntaxSource:
    """
    IntrospectionSource that reads the class from its source file.

    Usage:
        source = SyntaxSource()
        view = source.inspect_class(ClassIdentity("app.models", "User", path))
    """

    name = "syntax"

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def inspect_class(self, identity: ClassIdentity) -> ClassView:
        if identity.file_path is None:
            raise ClassResolutionError(identity.qualified_name, None, "no source file")

        try:
            source = Path(identity.file_path).read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise ClassResolutionError(
                identity.qualified_name, identity.file_path, str(e)
            ) from e

        return inspect_class_source(source, identity)
