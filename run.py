#!/usr/bin/env python3
"""
Transaction Ledger Entry Point

Starts the FastAPI server with the in-memory transaction ledger.
"""

import sys

from ledger_core.config import get_config
from ledger_core.logging_config import setup_logging
from ledger_core.api import run_server


if __name__ == "__main__":
    config = get_config()
    logger = setup_logging(level=config.log_level, log_format=config.log_format)

    logger.info(f"Starting transaction ledger on http://{config.api_host}:{config.api_port}")
    logger.info(f"Documentation at http://{config.api_host}:{config.api_port}/docs")

    try:
        run_server(
            host=config.api_host,
            port=config.api_port,
            debug=config.api_reload
        )
    except KeyboardInterrupt:
        logger.info("Shutting down transaction ledger")
    except Exception as e:
        logger.exception(f"Error starting server: {e}")
        sys.exit(1)
