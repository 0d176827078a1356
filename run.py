"""
Run script for starting the call relay server with low-latency WebSocket settings.

The OpenAI API key is checked once here: without it the process refuses to start.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import sys

import uvicorn

from call_relay.config.logging_config import configure_logging
from call_relay.config.settings import AuthConfigurationError, load_settings


def parse_args(argv=None, settings=None):
    """Parse command line arguments, defaulting to the environment settings."""
    settings = settings or load_settings()
    parser = argparse.ArgumentParser(
        description="Start the Twilio to OpenAI Realtime call relay"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help="Port to run the server on (default: 5050 or PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=settings.host,
        help="Host to bind the server to (default: 0.0.0.0 or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level.upper(),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for starting the server."""
    settings = load_settings()
    args = parse_args(argv, settings)
    logger = configure_logging(args.log_level)

    try:
        settings.require_api_key()
    except AuthConfigurationError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info(f"Starting server on http://{args.host}:{args.port}")
    uvicorn.run(
        "call_relay.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        http="h11",
        # Disable access logs, we have our own logging
        access_log=False,
        ws_ping_interval=5,
        ws_ping_timeout=20,
    )


if __name__ == "__main__":
    main()
