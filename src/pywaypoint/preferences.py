"""Persisted sharing preference.

The app remembers whether the user left location sharing on, and restores
that choice at the next sign-in without touching the shared store.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

_logger = logging.getLogger(__name__)

SHARING_ENABLED_KEY = "location_sharing_enabled"


class PreferenceStore(Protocol):
    def load_sharing_enabled(self, default: bool = False) -> bool: ...

    def save_sharing_enabled(self, value: bool) -> None: ...


class InMemoryPreferenceStore:
    """Preference store kept in process memory."""

    def __init__(self, sharing_enabled: bool | None = None) -> None:
        self._value = sharing_enabled
        self.saves = 0

    def load_sharing_enabled(self, default: bool = False) -> bool:
        return default if self._value is None else self._value

    def save_sharing_enabled(self, value: bool) -> None:
        self._value = bool(value)
        self.saves += 1


class JsonFilePreferenceStore:
    """Preference store backed by a small JSON document.

    A missing or unreadable file yields the default. Writes go through a
    temporary file in the same directory followed by an atomic replace.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, object]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError):
            _logger.warning("Unreadable preference file %s, using defaults", self._path, exc_info=True)
            return {}
        return data if isinstance(data, dict) else {}

    def load_sharing_enabled(self, default: bool = False) -> bool:
        value = self._read().get(SHARING_ENABLED_KEY)
        if isinstance(value, bool):
            return value
        return default

    def save_sharing_enabled(self, value: bool) -> None:
        data = self._read()
        data[SHARING_ENABLED_KEY] = bool(value)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
