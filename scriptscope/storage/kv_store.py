"""
ScriptScope Key-Value Stores

Minimal get/set persistence used for cached analyses and run checkpoints.
Values are plain JSON data; last write wins.
"""

import copy
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from scriptscope.core.exceptions import PersistenceError
from scriptscope.core.logging_config import get_logger
from scriptscope.utils.file_utils import ensure_directory, list_files, read_json, safe_filename, write_json

logger = get_logger("storage.kv_store")


class KeyValueStore(ABC):
    """Persistence boundary consumed by the checkpoint manager."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value or None when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key; missing keys are ignored."""

    @abstractmethod
    def keys(self, prefix: str = "") -> List[str]:
        pass


def _json_copy(key: str, value: Any) -> Any:
    try:
        return json.loads(json.dumps(value))
    except (TypeError, ValueError) as e:
        raise PersistenceError(f"Value for {key} is not JSON serializable: {e}", {"key": key})


class InMemoryStore(KeyValueStore):
    """Dict-backed store; values are JSON-copied on the way in and out."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str) -> Optional[Any]:
        if key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = _json_copy(key, value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self._data if k.startswith(prefix))

    def __len__(self) -> int:
        return len(self._data)


class JsonFileStore(KeyValueStore):
    """One <key>.json file per key inside a directory."""

    SUFFIX = ".json"

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not key or safe_filename(key) != key:
            raise PersistenceError(f"Invalid storage key: {key!r}", {"key": key})
        return self.directory / f"{key}{self.SUFFIX}"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        return read_json(path)

    def set(self, key: str, value: Any) -> None:
        ensure_directory(self.directory)
        write_json(self._path(key), value)
        logger.debug(f"Stored {key}")

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise PersistenceError(f"Failed to delete {path}: {e}", {"key": key})
        logger.debug(f"Deleted {key}")

    def keys(self, prefix: str = "") -> List[str]:
        return [
            p.stem for p in list_files(self.directory, f"*{self.SUFFIX}")
            if p.stem.startswith(prefix)
        ]
