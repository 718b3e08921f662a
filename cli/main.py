"""CLI entry point."""

import sys
import os

from common.logging_config import setup_logging
from cli.commands import close_client
from cli.repl import repl_loop


def main() -> None:
    """
    Run the sharefetch REPL.

    Logging stays at WARNING unless LOG_LEVEL or --debug asks for more, so
    the download progress line is not interleaved with request logs.
    """
    log_level = 'DEBUG' if '--debug' in sys.argv else os.getenv('LOG_LEVEL', 'WARNING')

    logger = setup_logging('cli', log_level=log_level)

    if '--debug' in sys.argv:
        logger.info("Debug logging enabled")
        sys.argv.remove('--debug')

    logger.info("sharefetch CLI starting...")
    try:
        repl_loop()
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        close_client()
        logger.info("sharefetch CLI exiting")


if __name__ == "__main__":
    main()
