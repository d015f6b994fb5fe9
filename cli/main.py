"""CLI entry point."""

import asyncio
import os
import sys

from common.logging_config import setup_logging
from cli.commands import create_clients, default_config_path
from cli.config import Config
from cli.repl import repl_loop
from vaultclient.exceptions import ConfigurationError


async def run() -> None:
    clients = create_clients(Config(default_config_path()))
    try:
        await repl_loop(clients)
    finally:
        await clients.aclose()


def main() -> None:
    """Entry point for CLI."""
    log_level = 'DEBUG' if '--debug' in sys.argv else os.getenv('LOG_LEVEL', 'WARNING')

    logger = setup_logging('cli', log_level=log_level)
    setup_logging('vaultclient', log_level=log_level)

    if '--debug' in sys.argv:
        logger.info("Debug logging enabled")
        sys.argv.remove('--debug')

    logger.info("CLI starting...")
    try:
        asyncio.run(run())
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        print(f"Error: {e.user_message}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        logger.info("CLI exiting")


if __name__ == "__main__":
    main()
