# SPDX-License-Identifier: AGPL-3.0-or-later
"""Command line interface for rendering previews."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from . import mime_types
from .errors import PreviewError
from .pipeline import ConversionPipeline
from .session import PreviewSession
from .sniff import sniff_mime


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render files into JPEG previews")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity")
    subparsers = parser.add_subparsers(dest="command", required=True)

    render_parser = subparsers.add_parser("render", help="Write the preview of a file")
    render_parser.add_argument("path", help="File to preview")
    render_parser.add_argument(
        "--out",
        default="-",
        help="Destination image file, or '-' for stdout (default)",
    )

    mime_parser = subparsers.add_parser("mime", help="Show the detected MIME type and route")
    mime_parser.add_argument("path", help="File to inspect")
    return parser.parse_args(argv)


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    path = Path(args.path).expanduser()
    if not path.is_file():
        print(f"File '{path}' does not exist", file=sys.stderr)
        return 5

    if args.command == "render":
        try:
            session = PreviewSession.from_path(path).preview()
            content_type = session.write_to(args.out)
        except PreviewError as exc:
            print(f"{type(exc).__name__}: {exc}", file=sys.stderr)
            return 2
        print(f"Content-Type: {content_type}", file=sys.stderr)
        return 0
    if args.command == "mime":
        pipeline = ConversionPipeline()
        mime = sniff_mime(path)
        route = pipeline.route_for(mime)
        report = {
            "path": str(path),
            "mime": mime,
            "eligible": pipeline.registry.is_eligible(mime),
            "route": route.value if route else None,
            "office_family": mime_types.office_family(mime),
        }
        json.dump(report, sys.stdout, ensure_ascii=False, indent=2)
        sys.stdout.write("\n")
        return 0
    raise ValueError(f"Unhandled command: {args.command}")


if __name__ == "__main__":  # pragma: no cover - direct execution convenience
    raise SystemExit(main())
