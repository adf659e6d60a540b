"""
ScriptScope File Utilities

Screenplay reading and the JSON file I/O behind the file-backed store. All
failures surface as PersistenceError.
"""

import json
import os
import re
from pathlib import Path
from typing import Any, List, Sequence, Union

from scriptscope.core.exceptions import PersistenceError

PathLike = Union[str, Path]

READ_SCRIPT_ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")

_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_SEPARATOR_RUNS = re.compile(r"[\s_]+")


def read_script(path: PathLike, encodings: Sequence[str] = READ_SCRIPT_ENCODINGS) -> str:
    """
    Read a screenplay text file.

    Tries each encoding in turn (scripts exported from Windows tools are often
    cp1252), drops a UTF-8 BOM and normalizes line endings to "\\n" so the
    same script hashes the same wherever it was saved.

    Raises:
        PersistenceError: If the file is missing or cannot be decoded
    """
    path = Path(path)
    if not path.is_file():
        raise PersistenceError(f"File not found: {path}")

    try:
        raw = path.read_bytes()
    except OSError as e:
        raise PersistenceError(f"Failed to read {path}: {e}")

    for encoding in encodings:
        try:
            text = raw.decode(encoding)
            break
        except UnicodeDecodeError:
            continue
    else:
        raise PersistenceError(f"Could not decode {path}", {"encodings": list(encodings)})

    return text.replace("\r\n", "\n").replace("\r", "\n")


def read_json(path: PathLike) -> Any:
    """Parse a UTF-8 JSON file; missing, unreadable or corrupt files raise PersistenceError."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        raise PersistenceError(f"File not found: {path}")
    except json.JSONDecodeError as e:
        raise PersistenceError(f"Invalid JSON in {path}: {e}", {"line": e.lineno})
    except (OSError, UnicodeDecodeError) as e:
        raise PersistenceError(f"Failed to read {path}: {e}")


def write_json(path: PathLike, data: Any, indent: int = 2) -> None:
    """
    Write data as pretty-printed UTF-8 JSON.

    The file is written next to its target and moved into place so a crash
    mid-write never leaves a truncated entry behind.
    """
    path = Path(path)
    ensure_directory(path.parent)
    tmp_path = path.with_name(path.name + ".tmp")

    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent, ensure_ascii=False)
        os.replace(tmp_path, path)
    except (OSError, TypeError, ValueError) as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise PersistenceError(f"Failed to write {path}: {e}")


def ensure_directory(path: PathLike) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def safe_filename(name: str, max_length: int = 100) -> str:
    """Filesystem-safe version of name: unsafe characters and whitespace runs become "_"."""
    safe = _UNSAFE_CHARS.sub("_", name)
    safe = _SEPARATOR_RUNS.sub("_", safe).strip("_")
    if len(safe) > max_length:
        safe = safe[:max_length].rstrip("_")
    return safe or "unnamed"


def list_files(directory: PathLike, pattern: str = "*") -> List[Path]:
    """Sorted files directly inside directory matching pattern; [] if it does not exist."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.glob(pattern) if p.is_file())
