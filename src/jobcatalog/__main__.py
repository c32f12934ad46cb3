"""CLI entry point for the job catalog."""

from __future__ import annotations

import sys

from jobcatalog.cli import build_parser, handle_compare, handle_ingest, handle_sources
from jobcatalog.errors import ActionableError


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "ingest":
            handle_ingest(args)
        elif args.command == "compare":
            handle_compare(args)
        elif args.command == "sources":
            handle_sources()
    except ActionableError as exc:
        print(f"Error: {exc.error}", file=sys.stderr)
        if exc.suggestion:
            print(f"  → {exc.suggestion}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
