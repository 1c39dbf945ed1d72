"""
Tests for the storage module.

Tests JSON baseline persistence and the load-once store.
"""

import json
import tempfile
from pathlib import Path

import pytest

from apidrift.exceptions import BaselineCorruptError, BaselineNotFoundError
from apidrift.models import (
    BaselineSnapshot,
    ClassSignature,
    MethodSignature,
    ParameterSignature,
    PropertySignature,
    Visibility,
)
from apidrift.storage import BaselineStore, load_baseline, save_baseline


@pytest.fixture
def temp_dir():
    """Create a temporary directory for baseline files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def make_snapshot() -> BaselineSnapshot:
    foo = ClassSignature(
        name="app.Foo",
        methods={
            "bar": MethodSignature(
                name="bar",
                return_type="None",
                parameters=(ParameterSignature("x", "int", "1"),),
            ),
            "_load": MethodSignature(name="_load", visibility=Visibility.PROTECTED, is_static=True),
        },
        properties={"size": PropertySignature("size", Visibility.PUBLIC, False, "int")},
        interfaces=("ABC",),
        traits=("JsonMixin",),
        parent="Base",
    )
    return BaselineSnapshot.from_classes([foo, ClassSignature(name="app.Base")])


class TestSaveAndLoad:
    """Tests for baseline file round trips."""

    def test_round_trip(self, temp_dir):
        """Test that load(save(snapshot)) reproduces the snapshot."""
        snapshot = make_snapshot()
        path = save_baseline(snapshot, temp_dir / "baseline.json")

        loaded = load_baseline(path)

        assert set(loaded) == set(snapshot)
        for name in snapshot:
            assert loaded[name] == snapshot[name]

    def test_pretty_printed_utf8(self, temp_dir):
        """Test the on-disk format."""
        snapshot = BaselineSnapshot.from_classes(
            [ClassSignature(name="app.Café", parent="Base")]
        )
        path = save_baseline(snapshot, temp_dir / "baseline.json")

        text = path.read_text(encoding="utf-8")
        assert "app.Café" in text
        assert '\n    "app.Café": {' in text
        assert json.loads(text)["app.Café"]["parent"] == "Base"

    def test_creates_parent_directories(self, temp_dir):
        """Test that storage/app/ is created on demand."""
        path = save_baseline(make_snapshot(), temp_dir / "storage" / "app" / "code_baseline.json")
        assert path.is_file()

    def test_no_temporary_files_left(self, temp_dir):
        """Test that the atomic write leaves only the baseline."""
        save_baseline(make_snapshot(), temp_dir / "baseline.json")
        save_baseline(make_snapshot(), temp_dir / "baseline.json")

        assert [p.name for p in temp_dir.iterdir()] == ["baseline.json"]

    def test_save_replaces_whole_document(self, temp_dir):
        """Test that a new capture drops classes from the old one."""
        path = temp_dir / "baseline.json"
        save_baseline(make_snapshot(), path)
        save_baseline(BaselineSnapshot.from_classes([ClassSignature(name="app.New")]), path)

        assert list(load_baseline(path)) == ["app.New"]


class TestLoadErrors:
    """Tests for missing and damaged baseline files."""

    def test_not_found(self, temp_dir):
        """Test that a missing file raises BaselineNotFoundError."""
        with pytest.raises(BaselineNotFoundError) as excinfo:
            load_baseline(temp_dir / "missing.json")
        assert "Baseline file not found" in str(excinfo.value)

    def test_corrupt(self, temp_dir):
        """Test that invalid JSON raises BaselineCorruptError."""
        path = temp_dir / "baseline.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(BaselineCorruptError):
            load_baseline(path)

    def test_non_object_is_empty(self, temp_dir, caplog):
        """Test that a JSON array loads as an empty snapshot with a warning."""
        path = temp_dir / "baseline.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")

        assert len(load_baseline(path)) == 0
        assert "does not contain a JSON object" in caplog.text


class TestBaselineStore:
    """Tests for the load-once store."""

    def test_loads_once(self, temp_dir):
        """Test that the same snapshot instance is returned on every call."""
        path = save_baseline(make_snapshot(), temp_dir / "baseline.json")
        store = BaselineStore(path)

        assert not store.is_loaded
        first = store.snapshot()
        path.write_text("{}", encoding="utf-8")
        second = store.snapshot()

        assert store.is_loaded
        assert first is second
        assert "app.Foo" in second

    def test_missing(self, temp_dir):
        """Test that a missing baseline raises on first use."""
        store = BaselineStore(temp_dir / "missing.json")

        assert not store.exists()
        with pytest.raises(BaselineNotFoundError):
            store.snapshot()

    def test_replace(self, temp_dir):
        """Test that replace persists and swaps the snapshot."""
        path = save_baseline(make_snapshot(), temp_dir / "baseline.json")
        store = BaselineStore(path)
        old = store.snapshot()

        new = BaselineSnapshot.from_classes([ClassSignature(name="app.Only")])
        store.replace(new)

        assert store.snapshot() is new
        assert "app.Foo" in old
        assert list(load_baseline(path)) == ["app.Only"]
