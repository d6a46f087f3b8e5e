"""
Main entry point for the scale gateway.

Usage:
    python -m scale_gateway [--config CONFIG_PATH]
"""

import argparse
import logging
import sys

import uvicorn

from scale_gateway import __version__
from scale_gateway.api.app import create_app
from scale_gateway.config.loader import load_config, ConfigurationError
from scale_gateway.utils.logging_setup import setup_logging


logger = logging.getLogger(__name__)


def main():
    """Main application entry point."""
    parser = argparse.ArgumentParser(description="HF2211 Scale Gateway")
    parser.add_argument(
        "--config",
        type=str,
        default="config.json",
        help="Path to configuration file (default: config.json)"
    )
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.logging)

    logger.info("=" * 60)
    logger.info(f"Scale Gateway v{__version__}")
    logger.info("=" * 60)

    if config.simulator.enabled:
        logger.info(f"Using SIMULATOR on {config.simulator.host}:{config.simulator.port}")
    if not config.devices and not config.simulator.enabled:
        logger.warning("No devices configured; add entries to 'devices' in the config file")

    app = create_app(config)

    logger.info(f"Starting API server on {config.server.ip}:{config.server.port}")
    logger.info("Press Ctrl+C to stop")

    try:
        uvicorn.run(
            app,
            host=config.server.ip,
            port=config.server.port,
            log_level=config.logging.level.lower(),
            log_config=None,
            access_log=config.logging.level == "DEBUG",
        )
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    except Exception as e:
        logger.error(f"Server error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
