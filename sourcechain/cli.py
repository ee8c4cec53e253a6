"""Command-line interface for sourcechain."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from sourcechain.discovery import make_map_discoverer
from sourcechain.errors import ChainError, CLIError, Diagnostic, format_diagnostic
from sourcechain.logger import get_logger
from sourcechain.main import open_portal, resolve
from sourcechain.serialization import attach_mapping_comment, read_text_file, source_map_to_json, write_source_map


def build_parser() -> argparse.ArgumentParser:
    """Build argparse command tree for the sourcechain CLI."""
    parser = argparse.ArgumentParser(prog="sourcechain", description="Flatten chains of source maps")
    subparsers = parser.add_subparsers(dest="command", required=True)

    flatten_parser = subparsers.add_parser("flatten", help="Resolve a generated file's map chain into one map")
    flatten_parser.add_argument("input", help="Generated file carrying a sourceMappingURL directive")
    flatten_parser.add_argument("-o", "--output", help="Write the generated file here, with its map beside it")
    flatten_parser.add_argument("--source-root", default="", help="sourceRoot of the flattened map (relative)")
    flatten_parser.add_argument(
        "--exclude-content",
        action="store_true",
        help="Do not embed original sources in sourcesContent",
    )
    flatten_parser.add_argument("--inline", action="store_true", help="Embed the map as a data URI in --output")
    flatten_parser.add_argument("--debug", action="store_true", help="Emit debug logging to stderr")

    trace_parser = subparsers.add_parser("trace", help="Find the original position of a generated position")
    trace_parser.add_argument("input", help="Generated file carrying a sourceMappingURL directive")
    trace_parser.add_argument("line", type=int, help="One-based generated line")
    trace_parser.add_argument("column", type=int, help="Zero-based generated column")
    trace_parser.add_argument("--json", action="store_true", help="Print the position as JSON")
    trace_parser.add_argument("--debug", action="store_true", help="Emit debug logging to stderr")

    return parser


def run(argv: list[str] | None = None) -> int:
    """Run CLI and return shell exit code."""
    args = build_parser().parse_args(argv)
    if args.debug:
        get_logger("sourcechain", logging.DEBUG)

    try:
        if args.command == "flatten":
            return _flatten(args)

        if args.command == "trace":
            return _trace(args)

        raise argparse.ArgumentTypeError(f"Unsupported command '{args.command}'.")

    except ChainError as err:
        diag = err.to_diagnostic()
        print(format_diagnostic(diag), file=sys.stderr)
        return 1
    except argparse.ArgumentTypeError as err:
        diag = Diagnostic(code="CLI001", message=str(err), file=None, hint="Run sourcechain --help for usage.")
        print(format_diagnostic(diag), file=sys.stderr)
        return 2
    except Exception as err:  # pragma: no cover
        diag = Diagnostic(code="CLI999", message=f"Internal error: {err}", file=None, hint="Run with --debug")
        print(format_diagnostic(diag), file=sys.stderr)
        return 3


def _flatten(args: argparse.Namespace) -> int:
    if args.inline and not args.output:
        raise argparse.ArgumentTypeError("--inline requires --output.")

    input_path = _require_file(args.input)
    content = input_path.read_text(encoding="utf-8")
    output_path = Path(args.output) if args.output else None
    generated_file = (output_path or input_path).name

    source_map = resolve(
        {"file": str(input_path), "content": content},
        generated_file=generated_file,
        source_root=args.source_root,
        include_content=not args.exclude_content,
        read_file=read_text_file,
        get_map=make_map_discoverer(read_text_file),
    )
    if source_map is None:
        print(f"Nothing to flatten in {input_path}", file=sys.stderr)
        return 0

    if output_path is None:
        print(source_map_to_json(source_map, indent=2))
        return 0

    if args.inline:
        url = source_map.to_url()
    else:
        map_path = output_path.with_name(output_path.name + ".map")
        write_source_map(source_map, map_path)
        url = map_path.name
    output_path.write_text(attach_mapping_comment(content, url), encoding="utf-8")
    return 0


def _trace(args: argparse.Namespace) -> int:
    if args.line < 1 or args.column < 0:
        raise argparse.ArgumentTypeError("LINE is one-based and COLUMN zero-based; both must be in range.")

    input_path = _require_file(args.input)
    portal = open_portal(
        {"file": str(input_path), "content": input_path.read_text(encoding="utf-8")},
        read_file=read_text_file,
        get_map=make_map_discoverer(read_text_file),
    )
    position = portal(args.line - 1, args.column)
    if position is None:
        print(f"No original position for {input_path}:{args.line}:{args.column}", file=sys.stderr)
        return 1

    if args.json:
        payload = position.to_dict()
        payload["line"] = position.line + 1
        print(json.dumps(payload, indent=2, sort_keys=True))
        return 0

    suffix = f" {position.name}" if position.name else ""
    print(f"{position.source or '<anonymous>'}:{position.line + 1}:{position.column}{suffix}")
    return 0


def _require_file(raw: str) -> Path:
    path = Path(raw)
    if not path.is_file():
        raise CLIError(
            code="CLI002",
            message=f"Input file not found: {path}",
            file=str(path),
            hint="Check the path and file permissions.",
        )
    return path


if __name__ == "__main__":
    raise SystemExit(run())
