"""Miscellaneous helpers."""

from __future__ import annotations

from typing import Callable

PacingPolicy = Callable[[int], float]


def fixed_pacing(delay_seconds: float) -> PacingPolicy:
    """Return a pacing policy that waits ``delay_seconds`` after every dispatch."""

    delay = max(0.0, float(delay_seconds))

    def policy(dispatch_count: int) -> float:
        return delay

    return policy


def parse_delay_setting(value: str | None, default: float = 0.0) -> float:
    """Parse the pause between dispatches.

    Bare integers are milliseconds (``"200"``), values with a dot or exponent
    are seconds (``"0.2"``). Negative values clamp to zero.
    """

    if value is None:
        return default
    stripped = value.strip()
    if not stripped:
        return default
    try:
        if any(symbol in stripped for symbol in ".eE"):
            parsed = float(stripped)
        else:
            parsed = float(int(stripped) / 1000)
    except ValueError:
        return default
    return max(0.0, parsed)


def parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse textual boolean configuration values.

    Supported truthy values: ``on``, ``true``, ``yes``, ``1`` (case-insensitive).
    Supported falsy values: ``off``, ``false``, ``no``, ``0``.
    Any other value returns ``default``.
    """

    if value is None:
        return default
    normalized = value.strip().lower()
    if not normalized:
        return default
    if normalized in {"on", "true", "yes", "1"}:
        return True
    if normalized in {"off", "false", "no", "0"}:
        return False
    return default


def normalize_token(token: str | None) -> str | None:
    """Return an ``Authorization`` header value for a Discord bot token."""

    if token is None:
        return None
    candidate = token.strip()
    if not candidate:
        return None
    lowered = candidate.lower()
    if lowered.startswith("bot ") or lowered.startswith("bearer "):
        return candidate
    return f"Bot {candidate}"
