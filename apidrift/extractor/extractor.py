"""
Baseline Extractor for API Drift

This module turns what an introspection source sees into ClassSignatures, and
walks a whole source tree to build a BaselineSnapshot.

Key Components:
    - extract_class: one identity -> one ClassSignature
    - identify_class: textual heuristic mapping a file to a class identity
    - iter_source_files: deterministic, filtered file walk
    - capture_tree: whole-tree capture used by the capture command

Class Identity Heuristic:
    The namespace is the dotted module path of the file relative to the
    parent of the capture root (capturing "app" maps app/models/user.py to
    "app.models.user"; an __init__.py names its package). The class is the
    first "class Name" match at the start of a line. This is a regex, not a
    parse, so files that are mid-edit and not yet syntactically complete still
    yield an identity.

Design Decisions:
    - Deterministic: files are visited in sorted order, members in
      declaration order
    - All or nothing: the snapshot is built locally and only returned once
      the walk finishes
    - Duplicate fully qualified names: last write wins, with a warning
"""

import fnmatch
import logging
import re
import threading
import time
from pathlib import Path
from typing import Iterator, Optional, Sequence

from apidrift.exceptions import CaptureCancelledError, ClassResolutionError
from apidrift.extractor.reflection import ReflectionSource
from apidrift.extractor.syntax import SyntaxSource
from apidrift.extractor.sources import (
    ClassIdentity,
    ClassView,
    IntrospectionSource,
    is_interface,
    is_trait,
)
from apidrift.models import (
    BaselineSnapshot,
    CaptureResult,
    ClassSignature,
    MethodSignature,
    PropertySignature,
)

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".py"

_CLASS_PATTERN = re.compile(r"^[ \t]*class\s+(\w+)", re.MULTILINE)


def build_class_signature(name: str, view: ClassView) -> ClassSignature:
    """
    Assemble a ClassSignature from a ClassView.

    Bases are partitioned into traits (mixins), interfaces and one parent:
    the first base that is neither a trait nor an interface.
    """
    methods: dict[str, MethodSignature] = {}
    for method in view.methods:
        methods[method.name] = method

    properties: dict[str, PropertySignature] = {}
    for prop in view.properties:
        if prop.name not in methods:
            properties[prop.name] = prop

    traits: list[str] = []
    interfaces: list[str] = []
    parent: Optional[str] = None
    for base in view.bases:
        if is_trait(base):
            if base not in traits:
                traits.append(base)
        elif parent is None and not is_interface(base):
            parent = base
        elif base not in interfaces:
            interfaces.append(base)

    return ClassSignature(
        name=name,
        methods=methods,
        properties=properties,
        interfaces=tuple(interfaces),
        traits=tuple(traits),
        parent=parent,
        locations=dict(view.locations),
    )


def extract_class(source: IntrospectionSource, identity: ClassIdentity) -> ClassSignature:
    """
    Extract the signature of one class.

    Args:
        source: Where to read the class from
        identity: Which class

    Returns:
        The ClassSignature, keyed by the identity's fully qualified name

    Raises:
        ClassResolutionError: If the source cannot resolve the identity
    """
    view = source.inspect_class(identity)
    return build_class_signature(identity.qualified_name, view)


def create_source(
    name: str,
    search_paths: Optional[Sequence[Path]] = None,
) -> IntrospectionSource:
    """
    Create an introspection source by name.

    Args:
        name: "syntax" or "reflection"
        search_paths: Import roots for the reflection source

    Raises:
        ValueError: For an unknown source name
    """
    if name == SyntaxSource.name:
        return SyntaxSource()
    if name == ReflectionSource.name:
        return ReflectionSource(search_paths)
    raise ValueError(f"Unknown introspection source: {name!r}")


def module_name_for(file_path: Path, root: Path) -> Optional[str]:
    """
    Dotted module path of a file inside a capture root.

    Returns:
        The module path, or None when the file is outside the root or a path
        component is not a valid identifier
    """
    file_path, root = file_path.resolve(), root.resolve()
    if not file_path.is_relative_to(root):
        return None
    relative = file_path.relative_to(root.parent)

    parts = list(relative.with_suffix("").parts)
    if parts and parts[-1] == "__init__":
        parts.pop()
    if not parts or not all(part.isidentifier() for part in parts):
        return None
    return ".".join(parts)


def find_class_name(contents: str) -> Optional[str]:
    """First "class Name" at the start of a line, or None."""
    match = _CLASS_PATTERN.search(contents)
    return match.group(1) if match else None


def identify_class(
    file_path: Path,
    root: Path,
    contents: Optional[str] = None,
) -> Optional[ClassIdentity]:
    """
    Map a source file to the identity of the class it declares.

    Args:
        file_path: The source file
        root: The capture root
        contents: File contents, if already read

    Returns:
        The ClassIdentity, or None if the namespace or class name cannot be
        determined
    """
    namespace = module_name_for(file_path, root)
    if namespace is None:
        return None

    if contents is None:
        contents = file_path.read_text(encoding="utf-8")
    class_name = find_class_name(contents)
    if class_name is None:
        return None

    return ClassIdentity(namespace=namespace, class_name=class_name, file_path=file_path)


def _is_excluded(relative: Path, patterns: Sequence[str]) -> bool:
    if any(part.startswith(".") or part == "__pycache__" for part in relative.parts):
        return True
    posix = relative.as_posix()
    return any(fnmatch.fnmatch(posix, pattern) or relative.match(pattern) for pattern in patterns)


def iter_source_files(
    root: Path,
    extension: str = DEFAULT_EXTENSION,
    exclude_patterns: Optional[Sequence[str]] = None,
) -> Iterator[Path]:
    """
    Yield source files under root in sorted order.

    Hidden directories and __pycache__ are always skipped; exclude_patterns
    are glob patterns matched against the path relative to root.
    """
    patterns = list(exclude_patterns or [])
    for file_path in sorted(root.rglob(f"*{extension}")):
        if not file_path.is_file():
            continue
        if _is_excluded(file_path.relative_to(root), patterns):
            continue
        yield file_path


def scan_file(
    file_path: Path,
    root: Path,
    source: IntrospectionSource,
) -> ClassSignature:
    """
    Identify and extract the class declared in one file.

    Raises:
        ClassResolutionError: If the file yields no identity or the source
            cannot resolve it
    """
    try:
        contents = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ClassResolutionError(file_path.stem, file_path, str(e)) from e

    identity = identify_class(file_path, root, contents)
    if identity is None:
        raise ClassResolutionError(
            file_path.stem, file_path, "unable to determine namespace or class name"
        )
    return extract_class(source, identity)


def capture_tree(
    root: Path | str,
    source: IntrospectionSource,
    extension: str = DEFAULT_EXTENSION,
    exclude_patterns: Optional[Sequence[str]] = None,
    cancel: Optional[threading.Event] = None,
) -> CaptureResult:
    """
    Capture a baseline snapshot of every class in a source tree.

    Files that yield no class, or whose class cannot be resolved, are skipped
    and recorded; they never abort the capture.

    Args:
        root: Root directory to capture
        source: Introspection source used for every class
        extension: Source file extension
        exclude_patterns: Glob patterns (relative to root) to skip
        cancel: Checked between files; once set, the capture stops

    Returns:
        CaptureResult holding the complete snapshot

    Raises:
        ValueError: If root is not a directory
        CaptureCancelledError: If cancel was set; no partial snapshot is returned

    Example:
        >>> result = capture_tree("app", SyntaxSource())
        >>> save_baseline(result.snapshot, "storage/app/code_baseline.json")
    """
    start_time = time.time()
    root = Path(root)

    if not root.is_dir():
        raise ValueError(f"Not a directory: {root}")

    result = CaptureResult()
    classes: dict[str, ClassSignature] = {}

    for file_path in iter_source_files(root, extension, exclude_patterns):
        if cancel is not None and cancel.is_set():
            raise CaptureCancelledError(
                f"Capture of {root} cancelled after {result.files_scanned} file(s)"
            )

        result.files_scanned += 1
        try:
            signature = scan_file(file_path, root, source)
        except ClassResolutionError as e:
            logger.info("Skipping %s: %s", file_path, e)
            result.skipped.append((str(file_path), str(e)))
            continue

        if signature.name in classes:
            logger.warning(
                "Class %s declared again in %s; overwriting the earlier entry",
                signature.name,
                file_path,
            )
            result.duplicates.append(signature.name)
        classes[signature.name] = signature

    result.snapshot = BaselineSnapshot(classes)
    result.scan_time_seconds = time.time() - start_time

    logger.debug(
        "Captured %d class(es) from %d file(s) using %s source",
        result.class_count,
        result.files_scanned,
        source.name,
    )
    return result
