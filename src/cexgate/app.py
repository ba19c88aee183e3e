from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import load_settings
from .di import build_container
from .logging import configure_logging
from .runtime import run

logger = logging.getLogger(__name__)

LOG_DIR = Path("logs")
SERVE_COMMAND = "serve"


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``cexgate`` console script.

    With no arguments, or with ``serve``, the gateway server starts. Any
    other first argument is handed to the typer CLI, e.g.
    ``cexgate ticker BTC/USDT -e okx``.
    """
    args = list(sys.argv[1:] if argv is None else argv)

    if args and args[0] != SERVE_COMMAND:
        return _run_cli_mode(args)
    return _run_server_mode(args[1:])


def _serve_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=f"cexgate {SERVE_COMMAND}",
        description="Serve the market-data relay and the aggregation API",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="YAML settings file; falls back to CEXGATE_CONFIG, then ./config.yml",
    )
    parser.add_argument("--host", help="Bind address, overrides server.host")
    parser.add_argument("--port", type=int, help="Listen port, overrides server.port")
    return parser


def _run_server_mode(argv: list[str]) -> int:
    options = _serve_parser().parse_args(argv)
    configure_logging(LOG_DIR)

    overrides = {"server.host": options.host, "server.port": options.port}
    try:
        settings = load_settings(options.config, overrides)
    except ValueError as exc:
        logger.error("Refusing to start: %s", exc)
        return 2

    container = build_container(settings)
    logger.info("Gateway starting on %s:%d", settings.server.host, settings.server.port)
    asyncio.run(run(container))
    logger.info("Gateway stopped")
    return 0


def _run_cli_mode(argv: list[str]) -> int:
    configure_logging(LOG_DIR)
    # typer and rich stay out of the server import path
    from .cli import run_cli

    try:
        run_cli(argv)
    except SystemExit as exit_:
        return exit_.code if isinstance(exit_.code, int) else 0
    except Exception as exc:
        logger.error("Command failed: %s", exc, exc_info=True)
        return 1
    return 0
