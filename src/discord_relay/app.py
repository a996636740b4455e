"""One-shot relay pass wiring HTTP session, state and engine together."""

from __future__ import annotations

import logging
from collections.abc import Callable

import aiohttp

from .config import Settings, describe_routes
from .discord import DiscordClient
from .dispatcher import TargetDispatcher
from .relay import PassResult, RelayEngine
from .state import WatermarkStore

logger = logging.getLogger(__name__)


class RelayApp:
    """Load state, relay every route once, persist the new watermark."""

    def __init__(
        self,
        settings: Settings,
        *,
        engine_factory: Callable[[aiohttp.ClientSession], RelayEngine] | None = None,
    ):
        self._settings = settings
        self._store = WatermarkStore(settings.state_path)
        self._engine_factory = engine_factory or self._build_engine

    @property
    def store(self) -> WatermarkStore:
        return self._store

    async def run(self) -> PassResult:
        """Run a single pass.

        Failures are logged and reported through ``PassResult.error``; in that
        case the returned watermark is the one loaded at start.
        """

        settings = self._settings
        loaded = self._store.load()
        watermark = loaded.watermark
        logger.info(
            "Загружено состояние %s (%s, источников: %s)",
            self._store.path,
            loaded.status,
            len(watermark),
        )
        logger.info("Маршруты: %s", describe_routes(settings.routes) or "нет")

        on_route_done = self._store.save if settings.runtime.persist_each_route else None
        try:
            async with aiohttp.ClientSession() as session:
                engine = self._engine_factory(session)
                result = await engine.run_pass(
                    settings.routes, watermark, on_route_done=on_route_done
                )
            logger.info("Сохранение состояния...")
            self._store.save(result.watermark)
        except Exception as exc:
            logger.exception("Ошибка пересылки")
            return PassResult(watermark=watermark, error=exc)
        finally:
            logger.info("Готово (без подключения к Gateway).")

        logger.info("Переслано сообщений: %s", result.dispatched)
        return result

    def _build_engine(self, session: aiohttp.ClientSession) -> RelayEngine:
        settings = self._settings
        client = DiscordClient(session, settings.token, settings.network)
        dispatcher = TargetDispatcher(client, network=settings.network)
        return RelayEngine(client, dispatcher, runtime=settings.runtime)
