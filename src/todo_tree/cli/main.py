# src/todo_tree/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds the provider, then runs the console host until
/exit, EOF or Ctrl+C.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_app
from ..config import get_settings
from ..connectors.console_host import ConsoleTreeHost, run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _run(settings) -> None:
    app = create_app(settings=settings)
    host = ConsoleTreeHost(app.provider)
    with asyncio.Runner() as runner:
        try:
            run_console_loop(host, runner)
        finally:
            runner.run(app.aclose())


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_file = setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s (log file: %s)...", settings.app_name, log_file)

    try:
        _run(settings)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")

    logger.info("Bye.")


if __name__ == "__main__":
    main()
