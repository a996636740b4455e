"""JSON backed storage for relay watermarks."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Mapping

from .models import parse_message_id

logger = logging.getLogger(__name__)

STATUS_LOADED = "loaded"
STATUS_MISSING = "missing"
STATUS_CORRUPT = "corrupt"


@dataclass(slots=True)
class Watermark:
    """Highest relayed message id per source channel.

    Values only ever move forward: :meth:`advance` ignores anything that is
    not greater than what is already recorded.
    """

    _values: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "Watermark":
        values: dict[str, int] = {}
        for source, raw in data.items():
            message_id = parse_message_id(raw)
            if message_id is None:
                logger.warning(
                    "Некорректный id %r для источника %s в файле состояния, запись пропущена",
                    raw,
                    source,
                )
                continue
            values[str(source)] = message_id
        return cls(values)

    def to_json(self) -> dict[str, str]:
        return {source: str(message_id) for source, message_id in self._values.items()}

    def get(self, source: str) -> int | None:
        return self._values.get(source)

    def advance(self, source: str, message_id: int) -> bool:
        current = self._values.get(source)
        if current is not None and message_id <= current:
            return False
        self._values[source] = message_id
        return True

    def copy(self) -> "Watermark":
        return Watermark(dict(self._values))

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)


@dataclass(slots=True)
class StateLoadResult:
    """Outcome of reading the state file."""

    watermark: Watermark
    status: str

    @property
    def recovered(self) -> bool:
        return self.status != STATUS_LOADED


class WatermarkStore:
    """Read and atomically rewrite the watermark file."""

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> StateLoadResult:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            logger.info("Файл состояния %s не найден, начинаем с пустого состояния", self._path)
            return StateLoadResult(Watermark(), STATUS_MISSING)

        try:
            data = json.loads(raw)
        except ValueError as exc:
            logger.warning(
                "Файл состояния %s повреждён (%s), начинаем с пустого состояния",
                self._path,
                exc,
            )
            return StateLoadResult(Watermark(), STATUS_CORRUPT)

        if not isinstance(data, dict):
            logger.warning(
                "Файл состояния %s содержит %s вместо объекта, начинаем с пустого состояния",
                self._path,
                type(data).__name__,
            )
            return StateLoadResult(Watermark(), STATUS_CORRUPT)

        return StateLoadResult(Watermark.from_json(data), STATUS_LOADED)

    def save(self, watermark: Watermark) -> None:
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        payload = json.dumps(watermark.to_json(), indent=2)
        try:
            with open(tmp_path, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self._path)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.debug("Состояние сохранено в %s (%s источников)", self._path, len(watermark))
