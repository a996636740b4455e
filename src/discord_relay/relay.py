"""Per-route relay logic: fetch, order, filter, dispatch, advance."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from .dispatcher import TargetDispatcher
from .formatting import build_relay_payload
from .models import RelayMessage, Route, RuntimeOptions
from .state import Watermark
from .utils import PacingPolicy, fixed_pacing

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class MessageSource(Protocol):
    async def fetch_messages(
        self,
        channel_id: str,
        *,
        limit: int = 100,
        after: int | None = None,
    ) -> Sequence[RelayMessage]:
        ...


@dataclass(slots=True)
class RouteOutcome:
    """What happened to a single route during a pass."""

    route: Route
    previous: int | None
    current: int | None
    fetched: int = 0
    dispatched: int = 0
    skipped_seen: int = 0
    skipped_empty: int = 0

    @property
    def advanced(self) -> bool:
        return self.current != self.previous


@dataclass(slots=True)
class PassResult:
    """Watermark after a pass plus per-route outcomes."""

    watermark: Watermark
    outcomes: list[RouteOutcome] = field(default_factory=list)
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def dispatched(self) -> int:
        return sum(outcome.dispatched for outcome in self.outcomes)


def order_messages(messages: Iterable[RelayMessage]) -> list[RelayMessage]:
    """Sort ascending by snowflake; equal ids keep their fetch order."""

    return sorted(messages, key=lambda message: message.id)


class RelayEngine:
    """Relay new messages for each route, one route and one message at a time."""

    def __init__(
        self,
        source: MessageSource,
        dispatcher: TargetDispatcher,
        *,
        runtime: RuntimeOptions | None = None,
        pacing: PacingPolicy | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self._source = source
        self._dispatcher = dispatcher
        self._runtime = runtime or RuntimeOptions()
        self._pacing = pacing or fixed_pacing(self._runtime.pacing_delay)
        self._sleep = sleep
        self._dispatch_count = 0

    async def run_pass(
        self,
        routes: Sequence[Route],
        watermark: Watermark,
        *,
        on_route_done: Callable[[Watermark], None] | None = None,
    ) -> PassResult:
        """Process ``routes`` in order against a copy of ``watermark``.

        Errors from fetching or dispatching propagate and abort the pass; the
        caller's ``watermark`` is never modified.
        """

        current = watermark.copy()
        result = PassResult(watermark=current)
        for route in routes:
            outcome = await self.relay_route(route, current)
            result.outcomes.append(outcome)
            if on_route_done is not None:
                on_route_done(current)
        return result

    async def relay_route(self, route: Route, watermark: Watermark) -> RouteOutcome:
        last_id = watermark.get(route.source)
        outcome = RouteOutcome(route=route, previous=last_id, current=last_id)

        logger.info("Маршрут %s -> %s", route.source, route.target.describe())
        logger.debug("Запрос сообщений: limit=%s after=%s", self._runtime.fetch_limit, last_id)
        fetched = await self._source.fetch_messages(
            route.source,
            limit=self._runtime.fetch_limit,
            after=last_id,
        )
        outcome.fetched = len(fetched)
        logger.info("Получено %s сообщений из канала %s", len(fetched), route.source)

        max_seen = last_id
        for message in order_messages(fetched):
            # the API may include the boundary message itself
            if last_id is not None and message.id <= last_id:
                outcome.skipped_seen += 1
                continue

            payload = None if message.is_empty() else build_relay_payload(message)
            if payload is None:
                outcome.skipped_empty += 1
            else:
                logger.info(
                    "Пересылка сообщения %s из канала %s -> %s",
                    message.id,
                    message.channel_id,
                    route.target.describe(),
                )
                await self._dispatcher.send(route.target, payload)
                outcome.dispatched += 1
                self._dispatch_count += 1
                await self._sleep(self._pacing(self._dispatch_count))

            if max_seen is None or message.id > max_seen:
                max_seen = message.id

        if max_seen is not None and watermark.advance(route.source, max_seen):
            outcome.current = max_seen
            logger.info("Обновлён last id для %s: %s -> %s", route.source, last_id, max_seen)
        else:
            logger.info("Без изменений для %s (last id остаётся %s)", route.source, last_id)
        return outcome
