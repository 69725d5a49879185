import argparse
import asyncio
import logging
from pathlib import Path
from typing import List, Optional
from pydantic import ValidationError
from doxie_upload.core.config import load_settings
from doxie_upload.core.lifecycle import LIFECYCLES, get_lifecycle
from doxie_upload.core.log_config import configure_logging
from doxie_upload.exceptions import UploadServerError, describe
from doxie_upload.server import serve

logger = logging.getLogger("doxie_upload")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="doxie-upload",
        description="Simple HTTP server that accepts file uploads and writes them to disk",
    )
    parser.add_argument("-a", "--address", help="address to listen on (default 127.0.0.1)")
    parser.add_argument("-p", "--port", type=int, help="port to listen on (default 8080)")
    parser.add_argument("-r", "--root", type=Path, help="directory uploads are written to (default .)")
    parser.add_argument("-v", "--verbosity", action="count", help="increase logging verbosity")
    parser.add_argument("--lifecycle", choices=sorted(LIFECYCLES), help="host (default) or container (PID 1)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = {
        "ADDRESS": args.address,
        "PORT": args.port,
        "ROOT": args.root,
        "VERBOSITY": args.verbosity,
        "LIFECYCLE": args.lifecycle,
    }
    try:
        settings = load_settings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        parser.error(f"invalid configuration\n{e}")

    configure_logging(settings.VERBOSITY)
    lifecycle = get_lifecycle(settings.LIFECYCLE)

    try:
        asyncio.run(serve(settings, lifecycle))
        lifecycle.cleanup()
    except UploadServerError as e:
        logger.error(describe(e))
        return 1

    return 0
