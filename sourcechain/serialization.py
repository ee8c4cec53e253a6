"""Filesystem hooks and writers for flattened maps."""

from __future__ import annotations

import json
import re
from pathlib import Path

from sourcechain.source_map import SourceMap


_DIRECTIVE_LINE_RE = re.compile(
    r"(?:\r?\n)?(?://[#@]\s*sourceMappingURL=[^\s'\"]+\s*|/\*[#@]\s*sourceMappingURL=[^\s'\"*]+\s*\*/\s*)$",
    re.MULTILINE,
)


def read_text_file(path: str) -> str | None:
    """`read_file` hook over the local filesystem; None for a missing file."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


def source_map_to_json(source_map: SourceMap, indent: int | None = None) -> str:
    """Serialize a flattened map to JSON text."""
    if indent is None:
        return source_map.to_json()
    return json.dumps(source_map.to_dict(), indent=indent)


def write_source_map(source_map: SourceMap, path: str | Path) -> None:
    """Write flattened map JSON to path."""
    target = Path(path)
    target.write_text(source_map.to_json(), encoding="utf-8")


def strip_mapping_comment(content: str) -> str:
    """Remove every `sourceMappingURL` directive from generated content."""
    return _DIRECTIVE_LINE_RE.sub("", content)


def attach_mapping_comment(content: str, url: str, *, block: bool = False) -> str:
    """Replace existing directives with one pointing at `url`."""
    body = strip_mapping_comment(content).rstrip("\n")
    directive = f"/*# sourceMappingURL={url} */" if block else f"//# sourceMappingURL={url}"
    return f"{body}\n{directive}\n"
