"""Command-line entrypoint for URL metric jobs."""

from __future__ import annotations

import argparse
import json
import os

from jobs.validate_all import main as run_validate_all
from url_metrics.config import get_viewport_aspect_ratio_bounds
from url_metrics.schema import build_schema, writable_schema


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="URL metrics job runner")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser(
        "validate", help="Validate URL metrics stored in JSON or NDJSON files"
    )
    validate_parser.add_argument("paths", nargs="+", help="Files to validate")
    validate_parser.add_argument(
        "--verbose", action="store_true", help="Also print records that passed validation"
    )
    validate_parser.add_argument(
        "--log-level",
        help="Override LOG_LEVEL for this invocation (e.g. DEBUG, INFO)",
    )

    schema_parser = subparsers.add_parser("schema", help="Print the URL metric JSON schema")
    schema_parser.add_argument(
        "--writable",
        action="store_true",
        help="Omit read-only properties, as accepted from clients",
    )

    subparsers.add_parser("show-config", help="Show the accepted viewport aspect ratio range")

    args = parser.parse_args(argv)

    if args.command == "schema":
        schema = writable_schema() if args.writable else build_schema()
        print(json.dumps(schema, indent=2))
        return 0

    if args.command == "show-config":
        bounds = get_viewport_aspect_ratio_bounds()
        print(f"viewport_aspect_ratio: minimum={bounds.minimum} maximum={bounds.maximum}")
        return 0

    if args.command == "validate":
        if args.log_level:
            os.environ["LOG_LEVEL"] = args.log_level
        return run_validate_all(args.paths, verbose=args.verbose)

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
