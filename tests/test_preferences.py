from __future__ import annotations

import json
from pathlib import Path

from pywaypoint.preferences import SHARING_ENABLED_KEY, InMemoryPreferenceStore, JsonFilePreferenceStore


def test_missing_file_yields_default(tmp_path: Path) -> None:
    store = JsonFilePreferenceStore(tmp_path / "prefs.json")
    assert store.load_sharing_enabled() is False
    assert store.load_sharing_enabled(default=True) is True


def test_saved_value_is_restored(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "prefs.json"
    JsonFilePreferenceStore(path).save_sharing_enabled(True)

    assert JsonFilePreferenceStore(path).load_sharing_enabled() is True
    assert json.loads(path.read_text(encoding="utf-8")) == {SHARING_ENABLED_KEY: True}
    assert [p.name for p in path.parent.iterdir()] == ["prefs.json"]


def test_other_keys_are_preserved(tmp_path: Path) -> None:
    path = tmp_path / "prefs.json"
    path.write_text(json.dumps({"theme": "dark"}), encoding="utf-8")

    JsonFilePreferenceStore(path).save_sharing_enabled(False)

    assert json.loads(path.read_text(encoding="utf-8")) == {"theme": "dark", SHARING_ENABLED_KEY: False}


def test_unreadable_file_yields_default(tmp_path: Path) -> None:
    path = tmp_path / "prefs.json"
    path.write_text("{not json", encoding="utf-8")
    assert JsonFilePreferenceStore(path).load_sharing_enabled(default=True) is True


def test_in_memory_store_counts_saves() -> None:
    store = InMemoryPreferenceStore()
    assert store.load_sharing_enabled() is False
    store.save_sharing_enabled(True)
    assert store.load_sharing_enabled() is True
    assert store.saves == 1
