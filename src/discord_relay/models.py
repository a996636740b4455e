"""Data models used across the relay."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence, Union

MAX_MESSAGE_ID = 2**64 - 1
MAX_EMBEDS = 10


def parse_message_id(value: Any) -> int | None:
    """Return ``value`` as an unsigned 64-bit snowflake or ``None``."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        candidate = value
    else:
        text = str(value or "").strip()
        if not (text.isascii() and text.isdigit()):
            return None
        candidate = int(text)
    if 0 <= candidate <= MAX_MESSAGE_ID:
        return candidate
    return None


@dataclass(frozen=True, slots=True)
class ChannelTarget:
    """Destination addressed by a Discord channel id."""

    channel_id: str

    def describe(self) -> str:
        return f"channel {self.channel_id}"


@dataclass(frozen=True, slots=True)
class WebhookTarget:
    """Destination addressed by a webhook URL."""

    url: str

    def describe(self) -> str:
        # the token part of the URL is a credential
        head, _, _ = self.url.rpartition("/")
        return f"webhook {head}/…"


Target = Union[ChannelTarget, WebhookTarget]


@dataclass(frozen=True, slots=True)
class Route:
    """Source channel paired with its delivery target."""

    source: str
    target: Target


@dataclass(slots=True)
class NetworkOptions:
    """Proxy and client identity overrides."""

    discord_proxy_url: str | None = None
    discord_proxy_login: str | None = None
    discord_proxy_password: str | None = None
    discord_user_agent: str | None = None


@dataclass(slots=True)
class RuntimeOptions:
    """Tunable behaviour of a relay pass."""

    pacing_delay: float = 0.2
    fetch_limit: int = 100
    persist_each_route: bool = False


@dataclass(frozen=True, slots=True)
class RelayMessage:
    """Subset of the Discord message payload used by the relay."""

    id: int
    channel_id: str
    content: str
    embeds: Sequence[Mapping[str, Any]] = ()
    attachments: Sequence[Mapping[str, Any]] = ()

    def is_empty(self) -> bool:
        return not (self.content or "").strip() and not self.embeds and not self.attachments


@dataclass(frozen=True, slots=True)
class RelayPayload:
    """Outgoing message body shared by channel and webhook delivery."""

    content: str | None = None
    embeds: Sequence[Mapping[str, Any]] = field(default_factory=tuple)

    def to_json(self) -> dict[str, Any]:
        body: dict[str, Any] = {"allowed_mentions": {"parse": []}}
        if self.content:
            body["content"] = self.content
        if self.embeds:
            body["embeds"] = [dict(embed) for embed in self.embeds]
        return body
