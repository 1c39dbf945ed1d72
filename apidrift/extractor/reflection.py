"""
Live-reflection Introspection Source

Describes a class by importing its module and inspecting the class object.
Importing runs module-level code, so this source is opt-in.

Members synthesised at runtime (dataclass ``__init__``/``__eq__``, namedtuple
helpers) and functions defined outside the class body are ignored, so that a
baseline captured by reflection compares cleanly against one captured from
syntax. Decorated methods are described by the function written in the class
body, found through __wrapped__ or the decorator's closure.
"""

import contextlib
import functools
import importlib
import inspect
import logging
import sys
import types
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Sequence

from apidrift.canonical import MISSING, canonicalize_default, canonicalize_type
from apidrift.exceptions import ClassResolutionError
from apidrift.extractor.sources import ClassIdentity, ClassView, visibility_for_name
from apidrift.models import MethodSignature, ParameterSignature, PropertySignature

logger = logging.getLogger(__name__)

_RECEIVER_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


def format_annotation(annotation: Any) -> str:
    """Render a live annotation object in canonical type form."""
    if annotation is inspect.Parameter.empty:
        return ""
    if annotation is None or annotation is type(None):
        return "None"
    if isinstance(annotation, str):
        return canonicalize_type(annotation)
    if isinstance(annotation, type) and not isinstance(annotation, types.GenericAlias):
        return canonicalize_type(annotation.__qualname__)
    return canonicalize_type(inspect.formatannotation(annotation))


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


def _belongs_to(func: Callable, prefix: str) -> bool:
    return getattr(func, "__qualname__", "").startswith(prefix)


def _closure_function(func: Callable, prefix: str, depth: int = 0) -> Optional[Callable]:
    """Find the class-body function captured by a wrapper's closure."""
    if depth > 8:
        return None
    for cell in getattr(func, "__closure__", None) or ():
        try:
            inner = cell.cell_contents
        except ValueError:
            # Empty cell
            continue
        if not inspect.isfunction(inner):
            continue
        inner = inspect.unwrap(inner)
        if _belongs_to(inner, prefix):
            return inner
        found = _closure_function(inner, prefix, depth + 1)
        if found is not None:
            return found
    return None


def defining_function(func: Callable, cls: type) -> Optional[Callable]:
    """
    Return the function written in the class body behind a class attribute.

    Decorators are looked through: functools.wraps wrappers via
    ``inspect.unwrap``, other wrappers via their closure. A wrapper whose
    original cannot be recovered is returned as is.

    Returns:
        The function, or None for members generated by exec (dataclass
        ``__init__``) and functions defined outside the class body
        (dataclass ``__replace__``, ``method = helper``)
    """
    func = inspect.unwrap(func)
    code = getattr(func, "__code__", None)
    if code is not None and code.co_filename.startswith("<"):
        return None

    prefix = cls.__qualname__ + "."
    if _belongs_to(func, prefix):
        return func
    if "<locals>" not in getattr(func, "__qualname__", ""):
        return None
    return _closure_function(func, prefix) or func


def _first_line(func: Callable) -> int:
    code = getattr(inspect.unwrap(func), "__code__", None)
    return code.co_firstlineno if code is not None else 0


def method_signature(
    name: str,
    func: Callable,
    is_static: bool,
    skip_receiver: bool,
) -> MethodSignature:
    """Build a MethodSignature from a plain function object."""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        # Builtins without signature metadata
        return MethodSignature(
            name=name, visibility=visibility_for_name(name), is_static=is_static
        )

    params = list(signature.parameters.values())
    if skip_receiver and params and params[0].kind in _RECEIVER_KINDS:
        params = params[1:]

    parameters = []
    for param in params:
        prefix = ""
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            prefix = "*"
        elif param.kind is inspect.Parameter.VAR_KEYWORD:
            prefix = "**"
        default = MISSING if param.default is inspect.Parameter.empty else param.default
        parameters.append(
            ParameterSignature(
                name=prefix + param.name,
                annotation=format_annotation(param.annotation),
                default=canonicalize_default(default),
            )
        )

    return MethodSignature(
        name=name,
        visibility=visibility_for_name(name),
        is_static=is_static,
        return_type=format_annotation(signature.return_annotation),
        parameters=tuple(parameters),
    )


def inspect_live_class(cls: type) -> ClassView:
    """
    Describe a class object.

    Args:
        cls: The class to inspect

    Returns:
        ClassView with the members defined in the class body
    """
    view = ClassView()
    view.bases = [
        canonicalize_type(base.__qualname__) for base in cls.__bases__ if base is not object
    ]

    try:
        annotations = inspect.get_annotations(cls)
    except NameError:
        # Unresolvable forward reference under deferred annotations
        logger.warning("Could not evaluate annotations of %s", cls.__qualname__)
        annotations = {}

    for name, annotation in annotations.items():
        if _is_dunder(name):
            continue
        text = format_annotation(annotation)
        view.properties.append(
            PropertySignature(
                name=name,
                visibility=visibility_for_name(name),
                is_static=text.startswith("ClassVar"),
                annotation=text,
            )
        )

    for name, attr in vars(cls).items():
        if isinstance(attr, staticmethod):
            func, is_static, skip_receiver = attr.__func__, True, False
        elif isinstance(attr, classmethod):
            func, is_static, skip_receiver = attr.__func__, True, True
        elif isinstance(attr, (property, functools.cached_property)):
            getter = attr.fget if isinstance(attr, property) else attr.func
            return_type = ""
            if getter is not None:
                try:
                    return_type = format_annotation(inspect.signature(getter).return_annotation)
                except (TypeError, ValueError):
                    pass
                view.locations[name] = _first_line(getter)
            view.properties.append(
                PropertySignature(
                    name=name,
                    visibility=visibility_for_name(name),
                    is_static=False,
                    annotation=return_type,
                )
            )
            continue
        elif inspect.isfunction(attr):
            func, is_static, skip_receiver = attr, False, True
        else:
            if _is_dunder(name) or name in annotations or inspect.isclass(attr):
                continue
            view.properties.append(
                PropertySignature(
                    name=name,
                    visibility=visibility_for_name(name),
                    is_static=True,
                    annotation="",
                )
            )
            continue

        original = defining_function(func, cls)
        if original is None:
            continue
        view.methods.append(method_signature(name, original, is_static, skip_receiver))
        view.locations[name] = _first_line(original)

    return view


class ReflectionSource:
    """
    IntrospectionSource that imports the class and inspects it.

    Args:
        search_paths: Directories put on ``sys.path`` while importing, so the
                      analysed tree does not need to be installed

    Usage:
        source = ReflectionSource([project_root])
        view = source.inspect_class(ClassIdentity("app.models", "User"))
    """

    name = "reflection"

    def __init__(self, search_paths: Optional[Sequence[str | Path]] = None) -> None:
        self.search_paths = [str(Path(p)) for p in (search_paths or [])]

    @contextlib.contextmanager
    def _import_path(self) -> Iterator[None]:
        added = [p for p in self.search_paths if p not in sys.path]
        sys.path[:0] = added
        try:
            yield
        finally:
            for path in added:
                if path in sys.path:
                    sys.path.remove(path)

    def load_class(self, identity: ClassIdentity) -> type:
        """
        Import the module and return the class object.

        Raises:
            ClassResolutionError: If the module cannot be imported or the
                class does not exist in it
        """
        if not identity.namespace:
            raise ClassResolutionError(
                identity.qualified_name, identity.file_path, "no module path"
            )

        try:
            with self._import_path():
                module = importlib.import_module(identity.namespace)
        except Exception as e:
            # Importing runs arbitrary module code
            logger.debug("Import of %s failed", identity.namespace, exc_info=True)
            raise ClassResolutionError(
                identity.qualified_name, identity.file_path, f"{type(e).__name__}: {e}"
            ) from e

        obj: Any = module
        for part in identity.class_name.split("."):
            obj = getattr(obj, part, None)
            if obj is None:
                raise ClassResolutionError(
                    identity.qualified_name, identity.file_path, "class not found in module"
                )

        if not inspect.isclass(obj):
            raise ClassResolutionError(
                identity.qualified_name, identity.file_path, "not a class"
            )
        return obj

    def inspect_class(self, identity: ClassIdentity) -> ClassView:
        return inspect_live_class(self.load_class(identity))
