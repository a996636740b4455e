"""Command line entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

from .app import RelayApp
from .config import ConfigError, load_settings

EXIT_CONFIG_ERROR = 1
EXIT_PASS_FAILED = 2


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Relay new Discord channel messages to channels or webhooks"
    )
    parser.add_argument(
        "--token",
        help="Токен Discord бота. Можно передать через DISCORD_TOKEN",
    )
    parser.add_argument(
        "--routes",
        help=(
            "JSON список маршрутов [{\"source\": ..., \"target\": ...}]. "
            "Можно передать через RELAY_ROUTES"
        ),
    )
    parser.add_argument("--state-path", help="Путь к файлу состояния (RELAY_STATE_PATH)")
    parser.add_argument(
        "--pacing-delay",
        help="Пауза после каждой отправки: целое число в мс или секунды с точкой",
    )
    parser.add_argument(
        "--strict-exit",
        action="store_true",
        help="Завершаться с кодом 2, если проход прерван ошибкой",
    )
    parser.add_argument("--log-level", default="INFO", help="Уровень логирования")
    args = parser.parse_args(argv)

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    logging.basicConfig(level=log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logger = logging.getLogger(__name__)

    try:
        settings = load_settings(
            os.environ,
            token=args.token,
            routes=args.routes,
            state_path=args.state_path,
            pacing_delay=args.pacing_delay,
        )
    except ConfigError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIG_ERROR

    app = RelayApp(settings)
    try:
        result = asyncio.run(app.run())
    except KeyboardInterrupt:
        logger.info("Остановка по запросу пользователя")
        return 0
    except Exception:
        logger.exception("Проход завершился ошибкой")
        return EXIT_PASS_FAILED if args.strict_exit else 0

    if not result.ok and args.strict_exit:
        return EXIT_PASS_FAILED
    return 0


if __name__ == "__main__":
    sys.exit(main())
