"""
JSON Key-Value Store

Durable local storage used by the history and feedback stores. Each key
is one JSON file in the data directory. Writes go to a temporary file in
the same directory which then replaces the target, so a reader never
sees a half-written value.
"""

import json
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Any, List, Optional

from pipeline.errors import PersistenceError

_KEY_RE = re.compile(r"^[A-Za-z0-9_.=-]+$")


class JsonFileStore:
    """Filesystem-backed key-value store with whole-value atomic replacement."""

    def __init__(self, data_dir: Optional[str] = None):
        """
        Args:
            data_dir: Directory for persistent data. Defaults to ~/.shadow_scan/
        """
        if data_dir is None:
            data_dir = os.path.join(os.path.expanduser("~"), ".shadow_scan")
        self.data_dir = Path(data_dir)
        self._lock = threading.RLock()

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key or ""):
            raise PersistenceError(f"Invalid storage key: {key!r}")
        return self.data_dir / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        with self._lock:
            if not path.exists():
                return default
            try:
                with open(path, "r", encoding="utf-8") as f:
                    return json.load(f)
            except (OSError, ValueError) as e:
                raise PersistenceError(f"Could not read {path.name}: {e}") from e

    def set(self, key: str, value: Any):
        path = self._path(key)
        with self._lock:
            tmp_name = None
            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
                with tempfile.NamedTemporaryFile(
                    "w", encoding="utf-8", dir=self.data_dir,
                    prefix=f".{key}.", suffix=".tmp", delete=False,
                ) as f:
                    tmp_name = f.name
                    json.dump(value, f, indent=2)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, path)
                tmp_name = None
            except (OSError, TypeError, ValueError) as e:
                raise PersistenceError(f"Could not write {path.name}: {e}") from e
            finally:
                if tmp_name is not None:
                    try:
                        os.unlink(tmp_name)
                    except OSError:
                        pass

    def remove(self, key: str):
        path = self._path(key)
        with self._lock:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise PersistenceError(f"Could not remove {path.name}: {e}") from e

    def keys(self) -> List[str]:
        if not self.data_dir.exists():
            return []
        return sorted(p.stem for p in self.data_dir.glob("*.json"))
