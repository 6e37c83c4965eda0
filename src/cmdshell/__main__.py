"""Run a shell from a YAML manifest: ``python -m cmdshell MANIFEST``."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .exceptions import ConfigError
from .shell import Shell


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cmdshell",
        description="Interactive command shell driven by a YAML manifest.",
    )
    parser.add_argument("manifest", help="Path to the shell manifest (YAML)")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        shell = Shell.from_yaml(args.manifest)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        shell.run()
    except KeyboardInterrupt:
        print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
