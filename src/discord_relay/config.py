"""Relay configuration from environment variables and CLI overrides."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Sequence
from urllib.parse import urlsplit, urlunsplit

from .dispatcher import resolve_target
from .models import NetworkOptions, Route, RuntimeOptions
from .utils import parse_bool, parse_delay_setting

logger = logging.getLogger(__name__)

DEFAULT_STATE_PATH = "lastMessageIds.json"
DEFAULT_PACING_DELAY = 0.2
ROUTES_ENV = "RELAY_ROUTES"
# name used by early deployments
LEGACY_ROUTES_ENV = "RELAY_ROUTS"


class ConfigError(ValueError):
    """Configuration is missing or cannot be used."""


@dataclass(frozen=True, slots=True)
class Settings:
    """Everything a relay pass needs before touching the network."""

    token: str
    routes: tuple[Route, ...]
    state_path: Path
    runtime: RuntimeOptions
    network: NetworkOptions


def load_settings(
    env: Mapping[str, str],
    *,
    token: str | None = None,
    routes: str | None = None,
    state_path: str | None = None,
    pacing_delay: str | None = None,
) -> Settings:
    """Build :class:`Settings`; explicit arguments win over ``env``."""

    resolved_token = (token or env.get("DISCORD_TOKEN") or "").strip()
    if not resolved_token:
        raise ConfigError("Нужно передать --token или переменную окружения DISCORD_TOKEN")

    raw_routes = routes
    if raw_routes is None:
        raw_routes = env.get(ROUTES_ENV)
    if raw_routes is None:
        raw_routes = env.get(LEGACY_ROUTES_ENV)

    runtime = RuntimeOptions(
        pacing_delay=parse_delay_setting(
            pacing_delay if pacing_delay is not None else env.get("RELAY_PACING_DELAY"),
            DEFAULT_PACING_DELAY,
        ),
        fetch_limit=_parse_fetch_limit(env.get("RELAY_FETCH_LIMIT")),
        persist_each_route=parse_bool(env.get("RELAY_PERSIST_EACH_ROUTE"), False),
    )

    return Settings(
        token=resolved_token,
        routes=parse_routes(raw_routes),
        state_path=Path(state_path or env.get("RELAY_STATE_PATH") or DEFAULT_STATE_PATH),
        runtime=runtime,
        network=load_network_options(env),
    )


def parse_routes(raw: str | None) -> tuple[Route, ...]:
    """Parse the JSON route list, skipping entries without source or target."""

    try:
        data = json.loads(raw or "[]")
    except ValueError as exc:
        raise ConfigError(f"Не удалось разобрать JSON маршрутов: {exc}") from exc

    if not isinstance(data, list) or not data:
        raise ConfigError(f"Нет корректных маршрутов в переменной {ROUTES_ENV}")

    parsed: list[Route] = []
    for index, entry in enumerate(data):
        route = _parse_route(entry)
        if route is None:
            logger.debug("Маршрут #%s пропущен: нет source или target", index)
            continue
        parsed.append(route)
    return tuple(parsed)


def _parse_route(entry: Any) -> Route | None:
    if not isinstance(entry, Mapping):
        return None
    source = entry.get("source")
    target = entry.get("target")
    if not source or not target:
        return None
    return Route(source=str(source), target=resolve_target(target))


def _parse_fetch_limit(value: str | None) -> int:
    if value is None or not value.strip():
        return 100
    try:
        limit = int(value.strip())
    except ValueError as exc:
        raise ConfigError(f"RELAY_FETCH_LIMIT должен быть целым числом: {value!r}") from exc
    if not 1 <= limit <= 100:
        raise ConfigError(f"RELAY_FETCH_LIMIT должен быть от 1 до 100: {limit}")
    return limit


def load_network_options(env: Mapping[str, str]) -> NetworkOptions:
    proxy_url = (env.get("DISCORD_PROXY_URL") or "").strip() or None
    proxy_login = (env.get("DISCORD_PROXY_LOGIN") or "").strip() or None
    proxy_password = env.get("DISCORD_PROXY_PASSWORD") or None

    if proxy_url:
        parsed = urlsplit(proxy_url)
        if parsed.username or parsed.password:
            proxy_login = proxy_login or parsed.username or None
            proxy_password = proxy_password or parsed.password or None
            host = parsed.hostname or ""
            if parsed.port:
                host = f"{host}:{parsed.port}"
            proxy_url = urlunsplit(
                (parsed.scheme, host, parsed.path, parsed.query, parsed.fragment)
            )

    return NetworkOptions(
        discord_proxy_url=proxy_url,
        discord_proxy_login=proxy_login,
        discord_proxy_password=proxy_password,
        discord_user_agent=(env.get("DISCORD_USER_AGENT") or "").strip() or None,
    )


def describe_routes(routes: Sequence[Route]) -> str:
    return ", ".join(f"{route.source} -> {route.target.describe()}" for route in routes)
