"""
Tests for the baseline extractor.

Tests the LibCST source, class identification and whole-tree capture.
"""

import threading

import pytest

from apidrift.exceptions import CaptureCancelledError, ClassResolutionError
from apidrift.extractor import (
    ClassIdentity,
    ClassView,
    SyntaxSource,
    build_class_signature,
    capture_tree,
    create_source,
    extract_class,
    identify_class,
    inspect_class_source,
    iter_source_files,
    visibility_for_name,
)
from apidrift.extractor.extractor import module_name_for
from apidrift.models import MethodSignature, PropertySignature, Visibility

from tests.fixtures import (
    BAR_CLASS,
    FOO_BASELINE,
    INCOMPLETE_SOURCE,
    NOT_A_CLASS,
    REDEFINED_METHOD,
    SERVICE_CLASS,
    write_tree,
)


def service_signature():
    identity = ClassIdentity("app.services", "UserService")
    return build_class_signature(
        identity.qualified_name, inspect_class_source(SERVICE_CLASS, identity)
    )


class TestVisibility:
    """Tests for the naming convention mapping."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("run", Visibility.PUBLIC),
            ("__init__", Visibility.PUBLIC),
            ("_refresh", Visibility.PROTECTED),
            ("__secret", Visibility.PRIVATE),
        ],
    )
    def test_names(self, name, expected):
        """Test each visibility rule."""
        assert visibility_for_name(name) is expected


class TestSyntaxSource:
    """Tests for extraction from source text."""

    def test_methods_in_declaration_order(self):
        """Test that methods keep declaration order and skip overloads and properties."""
        signature = service_signature()
        assert list(signature.methods) == [
            "__init__",
            "find",
            "normalize",
            "create",
            "_refresh",
            "__secret",
        ]

    def test_receiver_skipped(self):
        """Test that self and cls are not parameters."""
        signature = service_signature()

        assert signature.methods["find"].parameter_names == ["key", "default"]
        assert signature.methods["create"].parameter_names == ["name"]

    def test_static_method_keeps_all_parameters(self):
        """Test that a staticmethod has no receiver to skip."""
        normalize = service_signature().methods["normalize"]

        assert normalize.is_static is True
        assert normalize.parameter_names == ["value", "strict"]
        assert normalize.parameter("strict").default == "false"

    def test_classmethod_is_static(self):
        """Test that classmethods count as static."""
        create = service_signature().methods["create"]

        assert create.is_static is True
        assert create.return_type == "UserService"
        assert create.parameter("name").default == "'anon'"

    def test_variadic_names(self):
        """Test that variadics are recorded with their stars."""
        init = service_signature().methods["__init__"]
        assert init.parameter_names == ["name", "*args", "**kwargs"]
        assert init.return_type == "None"

    def test_types_canonicalized(self):
        """Test that annotations are normalised."""
        find = service_signature().methods["find"]

        assert find.return_type == "?User"
        assert find.parameter("key").annotation == "int|str"
        assert find.parameter("default").annotation == ""
        assert find.parameter("default").default == "null"

    def test_defaults_canonicalized(self):
        """Test each default category from source text."""
        refresh = service_signature().methods["_refresh"]

        assert refresh.visibility is Visibility.PROTECTED
        assert refresh.parameter("force").default == "true"
        assert refresh.parameter("mode").default == "Mode.FAST"
        assert refresh.parameter("items").default == "[]"

        secret = service_signature().methods["__secret"]
        assert secret.visibility is Visibility.PRIVATE
        assert secret.parameter("token").default == "unknown"

    def test_properties(self):
        """Test annotated fields, class variables and property methods."""
        properties = service_signature().properties

        assert properties["registry"] == PropertySignature(
            "registry", Visibility.PUBLIC, True, "ClassVar[dict]"
        )
        assert properties["timeout"] == PropertySignature(
            "timeout", Visibility.PUBLIC, False, "float"
        )
        assert properties["retries"].is_static is True
        assert properties["retries"].annotation == ""
        assert properties["_cache"].visibility is Visibility.PROTECTED
        assert properties["_cache"].annotation == "?dict"
        assert properties["label"].annotation == "str"
        assert properties["size"].annotation == "int"
        assert "label" not in service_signature().methods

    def test_bases_partitioned(self):
        """Test mixins as traits, ABC as interface, first other base as parent."""
        signature = service_signature()

        assert signature.traits == ("LoggingMixin",)
        assert signature.parent == "BaseService"
        assert signature.interfaces == ("ABC",)

    def test_last_definition_wins(self):
        """Test that a redefined method takes its last signature."""
        identity = ClassIdentity("app", "Twice")
        signature = build_class_signature(
            "app.Twice", inspect_class_source(REDEFINED_METHOD, identity)
        )

        assert list(signature.methods) == ["run", "other"]
        assert signature.methods["run"].parameter_names == ["a", "b"]

    def test_locations(self):
        """Test that member lines are recorded."""
        signature = build_class_signature(
            "app.Foo", inspect_class_source(FOO_BASELINE, ClassIdentity("app", "Foo"))
        )
        assert signature.locations["bar"] == 5

    def test_syntax_error(self):
        """Test that unparseable source raises ClassResolutionError."""
        with pytest.raises(ClassResolutionError) as excinfo:
            inspect_class_source(INCOMPLETE_SOURCE, ClassIdentity("app", "Broken"))
        assert "syntax error" in excinfo.value.reason

    def test_class_not_found(self):
        """Test that a missing class raises ClassResolutionError."""
        with pytest.raises(ClassResolutionError) as excinfo:
            inspect_class_source(BAR_CLASS, ClassIdentity("app", "Foo"))
        assert excinfo.value.identity == "app.Foo"

    def test_no_source_file(self):
        """Test that the syntax source needs a file path."""
        with pytest.raises(ClassResolutionError):
            SyntaxSource().inspect_class(ClassIdentity("app", "Foo"))


class TestBuildClassSignature:
    """Tests for assembling signatures from views."""

    def test_property_shadowed_by_method(self):
        """Test that a method wins over a property with the same name."""
        view = ClassView(
            methods=[MethodSignature("run")],
            properties=[PropertySignature("run"), PropertySignature("size")],
        )
        signature = build_class_signature("app.A", view)

        assert list(signature.properties) == ["size"]

    def test_interface_only_bases(self):
        """Test that interface-like bases never become the parent."""
        view = ClassView(bases=["Protocol", "ReaderInterface", "Generic"])
        signature = build_class_signature("app.A", view)

        assert signature.parent is None
        assert signature.interfaces == ("Protocol", "ReaderInterface", "Generic")

    def test_extra_bases_are_interfaces(self):
        """Test that bases after the parent are recorded as interfaces."""
        view = ClassView(bases=["Base", "Other"])
        signature = build_class_signature("app.A", view)

        assert signature.parent == "Base"
        assert signature.interfaces == ("Other",)


class TestIdentifyClass:
    """Tests for mapping files to class identities."""

    def test_module_path(self, tmp_path):
        """Test the dotted module path relative to the root's parent."""
        root = write_tree(tmp_path / "app", {"models/user.py": FOO_BASELINE})
        identity = identify_class(root / "models" / "user.py", root)

        assert identity.namespace == "app.models.user"
        assert identity.class_name == "Foo"
        assert identity.qualified_name == "app.models.user.Foo"

    def test_package_init(self, tmp_path):
        """Test that __init__.py names its package."""
        root = write_tree(tmp_path / "app", {"dup/__init__.py": BAR_CLASS})
        identity = identify_class(root / "dup" / "__init__.py", root)

        assert identity.qualified_name == "app.dup.Bar"

    def test_no_class(self, tmp_path):
        """Test that a file without a class has no identity."""
        root = write_tree(tmp_path / "app", {"helpers.py": NOT_A_CLASS})
        assert identify_class(root / "helpers.py", root) is None

    def test_invalid_module_name(self, tmp_path):
        """Test that a non-identifier path component has no identity."""
        root = write_tree(tmp_path / "app", {"my-module.py": BAR_CLASS})
        assert module_name_for(root / "my-module.py", root) is None
        assert identify_class(root / "my-module.py", root) is None

    def test_incomplete_file_still_identified(self, tmp_path):
        """Test that identification is textual and survives syntax errors."""
        root = write_tree(tmp_path / "app", {"broken.py": INCOMPLETE_SOURCE})
        assert identify_class(root / "broken.py", root).class_name == "Broken"


class TestIterSourceFiles:
    """Tests for the file walk."""

    def test_sorted_and_filtered(self, tmp_path):
        """Test sorted order, hidden and cache directories, and exclusions."""
        root = write_tree(
            tmp_path / "app",
            {
                "b.py": BAR_CLASS,
                "a.py": FOO_BASELINE,
                "notes.txt": "text",
                ".hidden/x.py": BAR_CLASS,
                "__pycache__/y.py": BAR_CLASS,
                "migrations/m1.py": BAR_CLASS,
            },
        )

        files = [p.relative_to(root).as_posix() for p in iter_source_files(root)]
        assert files == ["a.py", "b.py", "migrations/m1.py"]

        files = list(iter_source_files(root, exclude_patterns=["migrations/*"]))
        assert [p.name for p in files] == ["a.py", "b.py"]


class TestCaptureTree:
    """Tests for whole-tree capture."""

    def test_capture(self, tmp_path):
        """Test capturing a small tree."""
        root = write_tree(
            tmp_path / "app",
            {
                "foo.py": FOO_BASELINE,
                "models/bar.py": BAR_CLASS,
                "helpers.py": NOT_A_CLASS,
                "broken.py": INCOMPLETE_SOURCE,
            },
        )

        result = capture_tree(root, SyntaxSource())

        assert result.files_scanned == 4
        assert set(result.snapshot) == {"app.foo.Foo", "app.models.bar.Bar"}
        assert result.skip_count == 2
        assert result.duplicates == []

        skipped = {path.rsplit("/", 1)[-1]: reason for path, reason in result.skipped}
        assert "broken.py" in skipped
        assert "helpers.py" in skipped

    def test_duplicate_last_write_wins(self, tmp_path, caplog):
        """Test that two files declaring one class leave one entry, the last processed."""
        root = write_tree(
            tmp_path / "app",
            {
                "dup.py": "class Dup:\n    def first(self):\n        pass\n",
                "dup/__init__.py": "class Dup:\n    def second(self):\n        pass\n",
            },
        )

        result = capture_tree(root, SyntaxSource())

        # dup/__init__.py sorts before dup.py
        assert list(result.snapshot) == ["app.dup.Dup"]
        assert list(result.snapshot["app.dup.Dup"].methods) == ["first"]
        assert result.duplicates == ["app.dup.Dup"]
        assert "declared again" in caplog.text

    def test_not_a_directory(self, tmp_path):
        """Test that a missing root is rejected."""
        with pytest.raises(ValueError):
            capture_tree(tmp_path / "missing", SyntaxSource())

    def test_cancelled(self, tmp_path):
        """Test that a set cancel event stops the capture without a snapshot."""
        root = write_tree(tmp_path / "app", {"foo.py": FOO_BASELINE})
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(CaptureCancelledError):
            capture_tree(root, SyntaxSource(), cancel=cancel)

    def test_extract_class(self, tmp_path):
        """Test extracting one class through a source."""
        root = write_tree(tmp_path / "app", {"foo.py": FOO_BASELINE})
        identity = identify_class(root / "foo.py", root)

        signature = extract_class(SyntaxSource(), identity)

        assert signature.name == "app.foo.Foo"
        assert signature.methods["bar"].return_type == "None"


class TestCreateSource:
    """Tests for source construction by name."""

    def test_known_names(self):
        """Test both source names."""
        assert create_source("syntax").name == "syntax"
        assert create_source("reflection").name == "reflection"

    def test_unknown_name(self):
        """Test that an unknown name is rejected."""
        with pytest.raises(ValueError):
            create_source("bytecode")
