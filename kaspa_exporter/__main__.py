from __future__ import annotations

import argparse

from .config import load_settings
from .logging_setup import setup_logging
from .server import run


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kaspa-exporter",
        description="Expose Kaspa node status as Prometheus gauge metrics.",
    )
    parser.add_argument("--env-file", default=".env", help="Path to a .env file (default: .env)")
    parser.add_argument("--port", type=int, help="HTTP listen port (overrides PORT)")
    parser.add_argument("--log-level", help="Log level (overrides LOG_LEVEL)")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    settings = load_settings(args.env_file)
    if args.port is not None:
        settings.port = args.port
    if args.log_level:
        settings.log_level = args.log_level
    setup_logging(settings.log_level)
    run(settings)


if __name__ == "__main__":
    main()
