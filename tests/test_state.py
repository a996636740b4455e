from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from discord_relay.state import (
    STATUS_CORRUPT,
    STATUS_LOADED,
    STATUS_MISSING,
    Watermark,
    WatermarkStore,
)


def test_missing_file_yields_empty_state(tmp_path: Path) -> None:
    result = WatermarkStore(tmp_path / "state.json").load()

    assert result.status == STATUS_MISSING
    assert result.recovered is True
    assert len(result.watermark) == 0


def test_corrupt_file_yields_empty_state(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")

    result = WatermarkStore(path).load()

    assert result.status == STATUS_CORRUPT
    assert len(result.watermark) == 0


def test_non_object_file_is_treated_as_corrupt(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")

    assert WatermarkStore(path).load().status == STATUS_CORRUPT


def test_invalid_entries_are_dropped(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text(
        json.dumps({"1": "42", "2": "abc", "3": str(2**64), "4": "18446744073709551615"}),
        encoding="utf-8",
    )

    result = WatermarkStore(path).load()

    assert result.status == STATUS_LOADED
    assert result.watermark.to_json() == {"1": "42", "4": "18446744073709551615"}


def test_save_writes_string_ids_and_removes_temp_file(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    store = WatermarkStore(path)
    watermark = Watermark()
    watermark.advance("100", 1_234_567_890_123_456_789)

    store.save(watermark)

    assert json.loads(path.read_text(encoding="utf-8")) == {"100": "1234567890123456789"}
    assert not (tmp_path / "state.json.tmp").exists()
    assert store.load().watermark.get("100") == 1_234_567_890_123_456_789


def test_failed_replace_keeps_previous_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"100": "5"}), encoding="utf-8")
    store = WatermarkStore(path)
    watermark = Watermark.from_json({"100": "9"})

    def broken_replace(src: object, dst: object) -> None:
        raise OSError("disk went away")

    monkeypatch.setattr(os, "replace", broken_replace)

    with pytest.raises(OSError):
        store.save(watermark)

    assert json.loads(path.read_text(encoding="utf-8")) == {"100": "5"}
    assert not (tmp_path / "state.json.tmp").exists()


def test_advance_is_monotonic() -> None:
    watermark = Watermark()

    assert watermark.advance("a", 10) is True
    assert watermark.advance("a", 5) is False
    assert watermark.advance("a", 10) is False
    assert watermark.get("a") == 10


def test_copy_is_independent() -> None:
    original = Watermark.from_json({"a": "1"})
    clone = original.copy()
    clone.advance("a", 2)

    assert original.get("a") == 1
    assert clone.get("a") == 2


def test_non_ascii_digit_entries_are_dropped(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text(
        json.dumps({"1": "42", "2": "²", "3": "１２", "4": "7"}, ensure_ascii=False),
        encoding="utf-8",
    )

    result = WatermarkStore(path).load()

    assert result.status == STATUS_LOADED
    assert result.watermark.to_json() == {"1": "42", "4": "7"}
