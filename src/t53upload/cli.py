"""Command line entry point for the T53 upload server."""

import argparse
import logging
import sys
from typing import Optional, Sequence

import uvicorn
from pydantic import ValidationError

from t53upload.core.config import load_settings, package_version
from t53upload.core.logging import setup_logging
from t53upload.main import create_app

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="t53upload",
        description="Accepts file uploads from trusted clients into a staging directory.",
    )
    parser.add_argument(
        "--env",
        metavar="FILE",
        help="The .env file that contains the environment variable settings.",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Shows the version and exits.",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind to.")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.version:
        print(package_version())
        return 0

    if args.env:
        print(f"Using .env file located at '{args.env}'")

    try:
        settings = load_settings(args.env)
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        return 1

    setup_logging(settings)

    try:
        uvicorn.run(
            create_app(settings),
            host=args.host,
            port=args.port,
            log_config=None,
            proxy_headers=True,
            forwarded_allow_ips=settings.WEB_FORWARDED_ALLOW_IPS,
        )
    except Exception:
        logger.critical("FATAL ERROR", exc_info=True)
        return 1

    logger.info("Application Exiting")
    return 0


if __name__ == "__main__":
    sys.exit(main())
