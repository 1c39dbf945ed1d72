"""
JSON Baseline Store for API Drift

This module persists a BaselineSnapshot as one pretty-printed JSON document
and loads it back for drift checks.

Design Decisions:
    - One document per baseline; a capture always replaces it whole
    - Writes go to a temporary sibling file that is then renamed over the
      target, so a reader never sees a half-written baseline
    - Loading is strict about JSON syntax and permissive about shape: a
      missing class or field surfaces later as drift, not as a load error
    - BaselineStore loads at most once per instance and hands out the same
      immutable snapshot; replace() swaps the reference, never mutates it

Lifecycle:
    capture run  -> save_baseline(snapshot, path)
    drift checks -> BaselineStore(path).snapshot()  (read-only, cached)
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional

from apidrift.exceptions import BaselineCorruptError, BaselineNotFoundError
from apidrift.models import BaselineSnapshot

logger = logging.getLogger(__name__)

# Default baseline location, relative to the project root
DEFAULT_BASELINE_PATH = "storage/app/code_baseline.json"


def save_baseline(snapshot: BaselineSnapshot, path: str | Path) -> Path:
    """
    Write a snapshot to disk, replacing any existing baseline.

    Args:
        snapshot: The snapshot to persist
        path: Target file; parent directories are created if needed

    Returns:
        The path written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(snapshot.to_dict(), indent=4, ensure_ascii=False)

    fd, temp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
            handle.write("\n")
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise

    logger.debug("Saved %d class(es) to %s", len(snapshot), path)
    return path


def load_baseline(path: str | Path) -> BaselineSnapshot:
    """
    Read a snapshot from disk.

    Args:
        path: Baseline file

    Returns:
        The loaded snapshot

    Raises:
        BaselineNotFoundError: If the file does not exist
        BaselineCorruptError: If the file is not valid JSON
    """
    path = Path(path)
    if not path.is_file():
        raise BaselineNotFoundError(path)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BaselineCorruptError(path, str(e)) from e

    if not isinstance(data, dict):
        logger.warning(
            "Baseline %s does not contain a JSON object; treating it as empty", path
        )
        return BaselineSnapshot()

    return BaselineSnapshot.from_dict(data)


class BaselineStore:
    """
    Baseline file bound to one path, loaded once per process.

    Construct one store per run and pass it to whatever needs the baseline;
    there is no global baseline state.

    Usage:
        store = BaselineStore("storage/app/code_baseline.json")
        snapshot = store.snapshot()      # loads on first call
        store.replace(new_snapshot)      # saves, then swaps atomically
    """

    def __init__(self, path: str | Path = DEFAULT_BASELINE_PATH) -> None:
        """
        Initialize the store.

        Args:
            path: Path to the baseline JSON file
        """
        self._path = Path(path)
        self._lock = threading.Lock()
        self._snapshot: Optional[BaselineSnapshot] = None

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    def snapshot(self) -> BaselineSnapshot:
        """
        Return the baseline, loading it on first use.

        Raises:
            BaselineNotFoundError: If the file does not exist
            BaselineCorruptError: If the file is not valid JSON
        """
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot

        with self._lock:
            if self._snapshot is None:
                self._snapshot = load_baseline(self._path)
            return self._snapshot

    def save(self, snapshot: BaselineSnapshot) -> Path:
        """Write a snapshot without touching the loaded one."""
        return save_baseline(snapshot, self._path)

    def replace(self, snapshot: BaselineSnapshot) -> Path:
        """
        Persist a new snapshot and make it the one this store hands out.

        Readers holding the previous snapshot keep a consistent view of it.
        """
        with self._lock:
            written = save_baseline(snapshot, self._path)
            self._snapshot = snapshot
        return written
