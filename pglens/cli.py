"""Command line entry point: ``pglens --url postgresql://... [--port 54321]``."""

import argparse
import json
import os

import uvicorn
from pydantic import ValidationError

from pglens.core.logging import get_logger, setup_logging
from pglens.core.settings import DEFAULT_CONNECTION_NAME, get_settings
from pglens.main import create_app

logger = get_logger(__name__)


def parse_connection_urls(values: list[str]) -> dict[str, str]:
    """
    Turn ``--url`` values into named connections.

    ``name=postgresql://...`` names a connection; a bare URL is named
    ``default`` (the first one) or ``db2``, ``db3``... after that.
    """
    urls: dict[str, str] = {}
    for index, value in enumerate(values, start=1):
        name, sep, url = value.partition("=")
        if not sep or "://" in name:
            name = DEFAULT_CONNECTION_NAME if index == 1 else f"db{index}"
            url = value
        if name in urls:
            raise ValueError(f"Duplicate connection name '{name}'")
        urls[name] = url
    return urls


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pglens", description="Browse PostgreSQL tables in the browser"
    )
    parser.add_argument(
        "--url",
        action="append",
        default=[],
        help="Connection URL, optionally named as NAME=URL (repeatable)",
    )
    parser.add_argument("--host", default=None, help="Interface to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on (default: 54321)")
    parser.add_argument("--schema", default=None, help="Schema to browse (default: public)")
    parser.add_argument(
        "--statement-timeout",
        type=int,
        default=None,
        help="Server-side statement timeout in milliseconds (0 disables)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Command line options are applied through the environment so the app
    # reads a single Settings source
    if args.url:
        try:
            os.environ["DATABASE_URLS"] = json.dumps(parse_connection_urls(args.url))
        except ValueError as e:
            parser.error(str(e))
    if args.schema:
        os.environ["DEFAULT_SCHEMA"] = args.schema
    if args.statement_timeout is not None:
        os.environ["STATEMENT_TIMEOUT_MS"] = str(args.statement_timeout)
    if args.debug:
        os.environ["LOG_LEVEL"] = "DEBUG"
    get_settings.cache_clear()

    try:
        settings = get_settings()
    except ValidationError as e:
        parser.error(f"invalid configuration: {e}")
    setup_logging()

    host = args.host or settings.host
    port = args.port or settings.port
    logger.info(f"Serving {len(settings.connection_urls)} connection(s) on http://{host}:{port}")
    uvicorn.run(create_app(), host=host, port=port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
