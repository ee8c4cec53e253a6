"""Transformation-chain nodes: one artifact, its mapping and its upstream."""

from __future__ import annotations

import re
from bisect import bisect_right
from dataclasses import dataclass
from typing import Any

from sourcechain import vlq
from sourcechain.errors import MapFormatError
from sourcechain.paths import normalize, resolve_source
from sourcechain.source_map import MappingData


_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class Trace:
    """A resolved origin: the terminus node plus a zero-based position in it."""

    origin: Node
    line: int
    column: int
    name: str | None = None


class Node:
    """One artifact in a transformation chain.

    A node without a mapping is a terminus (an original source). A mapped
    node routes each of its mapping's `sources` entries to the upstream node
    at the same index. Tracing fills `resolved_sources`, `resolved_names`
    and `resolved_segments` exactly once.
    """

    def __init__(
        self,
        file: str | None = None,
        content: str | None = None,
        mapping: Any = None,
        upstream: list[Node] | None = None,
    ) -> None:
        self.file = file
        self.content = content
        self.mapping: MappingData | None = None if mapping is None else MappingData.coerce(mapping, file=file)
        self._segments: vlq.SegmentTable | None = None
        self._lines: list[str] | None = None
        self._upstream = upstream

        self.resolved_sources: list[Node] = []
        self.resolved_names: list[str] = []
        self.resolved_segments: vlq.SegmentTable | None = None
        self.traced = False
        self._source_keys: dict[Any, int] = {}
        self._name_keys: dict[str, int] = {}

    def __repr__(self) -> str:
        kind = "terminus" if self.is_terminus else "mapped"
        return f"Node({self.file or '<anonymous>'}, {kind})"

    @property
    def is_terminus(self) -> bool:
        return self.mapping is None

    @property
    def identity(self) -> Any:
        """Dedup key: the normalized file path when known, else the node itself."""
        if self.file is not None:
            return ("file", normalize(self.file))
        return ("node", id(self))

    @property
    def segments(self) -> vlq.SegmentTable | None:
        """Decoded segment table of this node's own mapping."""
        if self.mapping is None:
            return None
        if self._segments is None:
            self._segments = vlq.decode(self.mapping.mappings)
        return self._segments

    @property
    def upstream(self) -> list[Node]:
        """Upstream nodes parallel to `mapping.sources`."""
        if self.mapping is None:
            return []
        if self._upstream is None:
            self._upstream = [
                Node(file=path, content=content)
                for path, content in zip(self.source_paths(), self.mapping.sources_content)
            ]
        return self._upstream

    @upstream.setter
    def upstream(self, nodes: list[Node]) -> None:
        self._upstream = list(nodes)

    @property
    def lines(self) -> list[str] | None:
        if self.content is None:
            return None
        if self._lines is None:
            self._lines = _LINE_BREAK_RE.split(self.content)
        return self._lines

    def source_paths(self) -> list[str | None]:
        """Mapping sources resolved against `sourceRoot` and this node's directory."""
        if self.mapping is None:
            return []
        return [resolve_source(self.file, self.mapping.source_root, source) for source in self.mapping.sources]

    def upstream_at(self, index: int) -> Node:
        upstream = self.upstream
        if index < 0 or index >= len(upstream):
            raise MapFormatError(
                code="MAP006",
                message=f"Segment references source {index} but the mapping lists {len(upstream)} source(s).",
                file=self.file,
            )
        return upstream[index]

    def name_at(self, index: int | None) -> str | None:
        if index is None or self.mapping is None:
            return None
        if index < 0 or index >= len(self.mapping.names):
            raise MapFormatError(
                code="MAP006",
                message=f"Segment references name {index} but the mapping lists {len(self.mapping.names)} name(s).",
                file=self.file,
            )
        return self.mapping.names[index]

    def fits(self, line: int, column: int) -> bool:
        """False when known content shows the position past the end of its line."""
        lines = self.lines
        if lines is None:
            return True
        if line < 0 or line >= len(lines):
            return False
        return 0 <= column <= len(lines[line])

    def source_index(self, origin: Node) -> int:
        """Index of `origin` in `resolved_sources`, appending on first sight."""
        key = origin.identity
        index = self._source_keys.get(key)
        if index is None:
            index = len(self.resolved_sources)
            self._source_keys[key] = index
            self.resolved_sources.append(origin)
        return index

    def name_index(self, name: str) -> int:
        """Index of `name` in `resolved_names`, appending on first sight."""
        index = self._name_keys.get(name)
        if index is None:
            index = len(self.resolved_names)
            self._name_keys[name] = index
            self.resolved_names.append(name)
        return index

    def locate(self, line: int, column: int) -> Trace | None:
        """Resolve a generated position of this node to its oldest origin.

        Uses the rightmost resolved segment starting at or before `column`
        and shifts the original column by the distance from that segment's
        start. Returns None for gaps, unmapped ranges and positions that run
        past the end of a known origin line.
        """
        if self.mapping is None:
            if not self.fits(line, column):
                return None
            return Trace(origin=self, line=line, column=column)

        if not self.traced:
            from sourcechain.tracer import trace

            trace(self)

        table = self.resolved_segments or []
        if line < 0 or line >= len(table) or not table[line]:
            return None
        segments = table[line]

        index = bisect_right(segments, column, key=lambda segment: segment[0])
        if index == 0:
            return None
        segment = segments[index - 1]
        if len(segment) < 4:
            return None

        origin = self.resolved_sources[segment[1]]
        original_column = segment[3] + (column - segment[0])
        if not origin.fits(segment[2], original_column):
            return None

        name = self.resolved_names[segment[4]] if len(segment) == 5 else None
        return Trace(origin=origin, line=segment[2], column=original_column, name=name)
