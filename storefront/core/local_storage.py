"""Local persistent key-value storage.

Values are strings holding serialized JSON, scoped by string keys, the same
contract a browser's localStorage offers. One JSON document per scope on disk.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path
from typing import Any

from storefront.core.config import get_settings

logger = logging.getLogger(__name__)

SHARED_SCOPE = "shared"
READINESS_SCOPE = ".readiness"


class LocalStorageError(Exception):
    """Local storage could not be read or written."""


class LocalStorage(ABC):
    """Scoped string key-value store."""

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the stored string for key, or None."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store value under key."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove key. Missing keys are ignored."""

    def get_json(self, key: str, default: Any = None) -> Any:
        """Decode the JSON value under key.

        Raises:
            LocalStorageError: If the stored value is not valid JSON.
        """
        raw = self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise LocalStorageError(f"Stored value for {key!r} is not valid JSON: {e}") from e

    def set_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value, default=str))


class MemoryStorage(LocalStorage):
    """In-process storage, lost on restart."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStorage(LocalStorage):
    """Storage backed by a single JSON file.

    Every write replaces the file atomically, so a crash mid-write leaves the
    previous contents intact. Concurrent writers are last-write-wins.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        try:
            with self.path.open(encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            raise LocalStorageError(f"Cannot read local storage {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise LocalStorageError(f"Local storage {self.path} does not hold a JSON object")
        return data

    def _dump(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise LocalStorageError(f"Cannot write local storage {self.path}: {e}") from e

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def remove_item(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._dump(data)


def open_session_storage(session_token: str) -> JsonFileStorage:
    """Open the storage file owned by one client session.

    Args:
        session_token: Validated hex session token.

    Returns:
        JsonFileStorage: Storage scoped to the session.
    """
    settings = get_settings()
    return JsonFileStorage(settings.local_storage_dir / "sessions" / f"{session_token}.json")


@lru_cache
def get_shared_storage() -> JsonFileStorage:
    """Get the storage holding the local fallback logs shared by all sessions."""
    settings = get_settings()
    return JsonFileStorage(settings.local_storage_dir / f"{SHARED_SCOPE}.json")


def check_local_storage() -> dict[str, Any]:
    """Check that the fallback log is readable and its directory writable.

    The write goes to a scratch file beside the log, never the log itself.

    Returns:
        dict: Status with 'healthy' boolean and optional 'error' message.
    """
    settings = get_settings()
    probe = JsonFileStorage(settings.local_storage_dir / f"{READINESS_SCOPE}.json")
    try:
        get_shared_storage().get_item("__readiness__")
        probe.set_item("checked", "ok")
        return {"healthy": True}
    except LocalStorageError as e:
        return {"healthy": False, "error": str(e)}
