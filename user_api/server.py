"""
Command-line entry point that serves the API with uvicorn.
"""

from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

import uvicorn

from user_api.app import create_app
from user_api.config import get_settings

logger = logging.getLogger(__name__)


def main(argv: Optional[Sequence[str]] = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="User management API server")
    parser.add_argument(
        "--host",
        type=str,
        default=settings.host,
        help="Interface to bind",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=settings.port,
        help="Port to listen on",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.log_level,
        help="Logging level (DEBUG, INFO, WARNING, ...)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(settings)
    logger.info("User Management API running on http://%s:%d", args.host, args.port)
    logger.info("API: http://%s:%d%s/users", args.host, args.port, settings.api_prefix)
    # uvicorn turns SIGINT/SIGTERM into a lifespan shutdown, which closes the store.
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
