"""Discord REST API client."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping, Sequence

import aiohttp

from .models import NetworkOptions, RelayMessage, parse_message_id
from .utils import normalize_token

_API_BASE = "https://discord.com/api/v10"
_DEFAULT_USER_AGENT = "DiscordBot (https://github.com, 1.0)"
_REQUEST_TIMEOUT = 15
_MAX_PAGE_SIZE = 100

WEBHOOK_URL_PREFIX = "https://discord.com/api/webhooks/"


logger = logging.getLogger(__name__)


class DiscordAPIError(RuntimeError):
    """Discord rejected a request or could not be reached."""

    def __init__(self, message: str, *, status: int | None = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class DiscordClient:
    """Thin asynchronous wrapper around the Discord REST API."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        token: str | None = None,
        network: NetworkOptions | None = None,
    ):
        self._session = session
        self._token = normalize_token(token)
        self._network = network or NetworkOptions()

    async def fetch_messages(
        self,
        channel_id: str,
        *,
        limit: int = _MAX_PAGE_SIZE,
        after: int | None = None,
    ) -> Sequence[RelayMessage]:
        params = {"limit": str(max(1, min(limit, _MAX_PAGE_SIZE)))}
        if after is not None:
            params["after"] = str(after)

        url = f"{_API_BASE}/channels/{channel_id}/messages"
        data = await self._request("GET", url, params=params)
        if not isinstance(data, list):
            raise DiscordAPIError(
                f"Unexpected response for channel {channel_id} messages",
                status=200,
                body=str(data)[:300],
            )

        messages: list[RelayMessage] = []
        for payload in data:
            if not isinstance(payload, Mapping):
                continue
            message = _parse_message(payload, channel_id)
            if message is None:
                logger.debug("Пропущено сообщение без корректного id в канале %s", channel_id)
                continue
            messages.append(message)
        return tuple(messages)

    async def post_channel_message(self, channel_id: str, body: Mapping[str, Any]) -> None:
        url = f"{_API_BASE}/channels/{channel_id}/messages"
        await self._request("POST", url, json=dict(body))

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        json: Mapping[str, Any] | None = None,
    ) -> Any:
        if not self._token:
            raise DiscordAPIError("Discord token is not configured")

        headers = {
            "Authorization": self._token,
            "User-Agent": self._choose_user_agent(),
            "Accept": "application/json",
        }
        try:
            timeout_cfg = aiohttp.ClientTimeout(total=_REQUEST_TIMEOUT)
            async with self._session.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json,
                proxy=self._network.discord_proxy_url,
                proxy_auth=_build_proxy_auth(self._network),
                timeout=timeout_cfg,
            ) as resp:
                if resp.status >= 400:
                    body = await resp.text()
                    logger.warning(
                        "Discord ответил статусом %s на %s %s",
                        resp.status,
                        method,
                        url,
                    )
                    raise DiscordAPIError(
                        f"Discord responded with status {resp.status} to {method} {url}",
                        status=resp.status,
                        body=body[:300],
                    )
                if resp.status == 204:
                    return None
                return await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise DiscordAPIError(f"Could not reach Discord for {method} {url}: {exc}") from exc

    def _choose_user_agent(self) -> str:
        return self._network.discord_user_agent or _DEFAULT_USER_AGENT


class WebhookClient:
    """Client bound to a single webhook URL."""

    def __init__(
        self,
        url: str,
        session: aiohttp.ClientSession,
        network: NetworkOptions | None = None,
    ):
        self._url = url
        self._session = session
        self._network = network or NetworkOptions()

    async def send(self, body: Mapping[str, Any]) -> None:
        headers = {
            "User-Agent": self._network.discord_user_agent or _DEFAULT_USER_AGENT,
            "Accept": "application/json",
        }
        try:
            timeout_cfg = aiohttp.ClientTimeout(total=_REQUEST_TIMEOUT)
            async with self._session.post(
                self._url,
                headers=headers,
                json=dict(body),
                proxy=self._network.discord_proxy_url,
                proxy_auth=_build_proxy_auth(self._network),
                timeout=timeout_cfg,
            ) as resp:
                text = await resp.text()
                if resp.status >= 400:
                    logger.warning("Webhook ответил статусом %s", resp.status)
                    raise DiscordAPIError(
                        f"Webhook responded with status {resp.status}",
                        status=resp.status,
                        body=text[:300],
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise DiscordAPIError(f"Could not reach webhook: {exc}") from exc


@asynccontextmanager
async def open_webhook(
    url: str, network: NetworkOptions | None = None
) -> AsyncIterator[WebhookClient]:
    """Yield a webhook client whose HTTP session lives only for the block."""

    session = aiohttp.ClientSession()
    try:
        yield WebhookClient(url, session, network)
    finally:
        await session.close()


def _build_proxy_auth(options: NetworkOptions) -> aiohttp.BasicAuth | None:
    login = options.discord_proxy_login
    password = options.discord_proxy_password
    if login:
        return aiohttp.BasicAuth(login, password or "")
    return None


def _parse_message(payload: Mapping[str, Any], channel_id: str) -> RelayMessage | None:
    message_id = parse_message_id(payload.get("id"))
    if message_id is None:
        return None
    attachments_raw = payload.get("attachments") or []
    embeds_raw = payload.get("embeds") or []
    attachments = tuple(item for item in attachments_raw if isinstance(item, Mapping))
    embeds = tuple(item for item in embeds_raw if isinstance(item, Mapping))
    return RelayMessage(
        id=message_id,
        channel_id=str(payload.get("channel_id") or channel_id),
        content=str(payload.get("content") or ""),
        embeds=embeds,
        attachments=attachments,
    )
