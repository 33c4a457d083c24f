"""CLI entry point."""

import asyncio
import os
import sys
from pathlib import Path

from cli.repl import repl_loop
from common.config import Config, default_config_path
from common.logging_config import setup_logging
from ingestion.engine import IngestionEngine


def main() -> None:
    """Entry point for CLI."""
    log_level = 'DEBUG' if '--debug' in sys.argv else os.getenv('LOG_LEVEL', 'WARNING')

    logger = setup_logging('cli', log_level=log_level)

    if '--debug' in sys.argv:
        logger.info("Debug logging enabled")
        sys.argv.remove('--debug')

    config_path = Path(os.environ['FILEDOCK_CONFIG']) if os.environ.get('FILEDOCK_CONFIG') else default_config_path()
    config = Config(config_path)

    logger.info("CLI starting...")
    try:
        asyncio.run(repl_loop(IngestionEngine.from_config(config), config))
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        logger.info("CLI exiting")


if __name__ == "__main__":
    main()
