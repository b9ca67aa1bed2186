from __future__ import annotations

import logging
import sys

import uvicorn

from candleshop.api.app import app
from candleshop.config import load_config
from candleshop.data import database

APP_VERSION = "v1.0"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main() -> int:
    config = load_config()
    configure_logging(config.log_level)
    database.initialize()

    logging.getLogger(__name__).info(
        "Starting candleshop %s (%s) on %s:%s", APP_VERSION, config.environment, config.host, config.port
    )
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
