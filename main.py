#!/usr/bin/env python3
"""
ArenaGuard - Service Entry Point
================================

Serves the ArenaGuard HTTP API.

Usage:
    python main.py                      # serve on ARENAGUARD_API_HOST:ARENAGUARD_API_PORT
    python main.py --issue-token alice  # print an access token for user "alice"

Configuration is read from the environment (and a .env file if present).
"""

import argparse
import sys

import uvicorn
from dotenv import load_dotenv

from arenaguard import __version__
from arenaguard.core.config import ConfigValidationError, validate_and_log_config
from arenaguard.core.logger import logger


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="ArenaGuard API server")
    parser.add_argument(
        "--issue-token",
        metavar="USER_ID",
        help="Print a signed access token for USER_ID and exit",
    )
    return parser.parse_args(argv)


def issue_token(user_id: str) -> None:
    """Operator path for minting tokens when no upstream identity provider is wired in."""
    from arenaguard.api.services.auth import get_auth_service

    token, expires_at = get_auth_service().issue_token(user_id)
    logger.tree("Access Token Issued", [
        ("User", user_id),
        ("Expires", expires_at.isoformat()),
    ], emoji="🔑")
    print(token)


def main(argv=None) -> None:
    """
    Main entry point.

    1. Loads .env into the environment
    2. Validates and logs configuration
    3. Issues a token, or serves the API with uvicorn
    """
    load_dotenv()
    args = parse_args(argv)

    try:
        validate_and_log_config()
    except ConfigValidationError as e:
        logger.error("Invalid Configuration", [("Error", str(e))])
        sys.exit(1)

    if args.issue_token:
        issue_token(args.issue_token)
        return

    from arenaguard.api.config import get_api_config

    api_config = get_api_config()
    logger.tree("ARENAGUARD STARTING", [
        ("Version", __version__),
        ("Host", api_config.host),
        ("Port", str(api_config.port)),
        ("Debug", "Yes" if api_config.debug else "No"),
    ], emoji="🏟️")

    uvicorn.run(
        "arenaguard.api.app:app",
        host=api_config.host,
        port=api_config.port,
        log_level="debug" if api_config.debug else "info",
    )


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("🛑 Stopped by user (Ctrl+C)")
