# src/teamtask/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, probes the session, then runs the
console REPL until /exit. Shutdown always closes the HTTP client.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_app_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.errors import ConfigError
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _run(settings) -> None:
    state = create_app_state(settings=settings)
    try:
        await state.start()
        user = state.session.user
        logger.info("Session: %s", f"logged in as {user.email}" if user else "not logged in")
        await run_console_loop(state)
    finally:
        await state.shutdown()


def main() -> None:
    try:
        settings = get_settings()
    except ConfigError as e:
        raise SystemExit(f"Configuration error: {e}") from e

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s %s...", settings.app_name, settings.app_version)
    if settings.debug_mode:
        settings.log_summary()

    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
