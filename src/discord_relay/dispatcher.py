"""Delivery of relay payloads to channels and webhooks."""

from __future__ import annotations

import logging
from typing import Any, AsyncContextManager, Callable, Mapping, Protocol

from .discord import WEBHOOK_URL_PREFIX, WebhookClient, open_webhook
from .models import ChannelTarget, NetworkOptions, RelayPayload, Target, WebhookTarget

logger = logging.getLogger(__name__)


class ChannelPoster(Protocol):
    async def post_channel_message(self, channel_id: str, body: Mapping[str, Any]) -> None:
        ...


WebhookOpener = Callable[[str], AsyncContextManager[WebhookClient]]


def resolve_target(value: Any) -> Target:
    """Classify a configured target as a webhook URL or a channel id."""

    if isinstance(value, str) and value.startswith(WEBHOOK_URL_PREFIX):
        return WebhookTarget(url=value)
    return ChannelTarget(channel_id=str(value))


class TargetDispatcher:
    """Send payloads to the destination described by a :class:`Target`."""

    def __init__(
        self,
        channels: ChannelPoster,
        *,
        network: NetworkOptions | None = None,
        webhook_opener: WebhookOpener | None = None,
    ):
        self._channels = channels
        self._network = network or NetworkOptions()
        self._webhook_opener = webhook_opener or self._default_opener

    async def send(self, target: Target, payload: RelayPayload) -> None:
        body = payload.to_json()
        if isinstance(target, WebhookTarget):
            async with self._webhook_opener(target.url) as webhook:
                await webhook.send(body)
        else:
            await self._channels.post_channel_message(target.channel_id, body)
        logger.debug("Сообщение доставлено: %s", target.describe())

    def _default_opener(self, url: str) -> AsyncContextManager[WebhookClient]:
        return open_webhook(url, self._network)
