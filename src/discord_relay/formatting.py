"""Payload construction for relayed messages."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from .models import MAX_EMBEDS, RelayMessage, RelayPayload

AttachmentPayload = Mapping[str, Any]


def build_relay_payload(message: RelayMessage) -> RelayPayload | None:
    """Convert a Discord message into an outgoing payload.

    Attachment links are appended to the text, one per line, and embeds are
    capped at the Discord limit. Returns ``None`` when nothing would be sent.
    """

    content = (message.content or "").strip()
    urls = list(_attachment_urls(message.attachments))
    if urls:
        content = "\n".join(part for part in (content, *urls) if part)

    embeds = tuple(message.embeds[:MAX_EMBEDS])
    if not content and not embeds:
        return None
    return RelayPayload(content=content or None, embeds=embeds)


def _attachment_urls(attachments: Sequence[AttachmentPayload]) -> Iterable[str]:
    for attachment in attachments:
        url = str(attachment.get("url") or attachment.get("proxy_url") or "").strip()
        if url:
            yield url
