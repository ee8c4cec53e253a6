"""Flatten a node graph so every segment points at its oldest known origin."""

from __future__ import annotations

from sourcechain.errors import ChainIntegrityError
from sourcechain.logger import get_logger
from sourcechain.node import Node, Trace
from sourcechain.vlq import Segment, SegmentLine, SegmentTable

logger = get_logger(__name__)


def trace(node: Node) -> Node | None:
    """Trace `node` and its mapped ancestry; None for a terminus.

    Each node is traced once. Shared ancestors are reused as already
    resolved, so tracing a graph twice produces the same tables.
    """
    if node.is_terminus:
        return None
    _trace(node, active=set())
    return node


def _trace(node: Node, active: set[int]) -> None:
    if node.traced:
        return
    if id(node) in active:
        raise ChainIntegrityError(
            code="CHN003",
            message="Node graph contains a cycle.",
            file=node.file,
            hint="A node cannot be its own ancestor; break the cycle when building nodes by hand.",
        )

    active.add(id(node))
    mapped_upstream = False
    for upstream in node.upstream:
        if upstream.is_terminus:
            continue
        mapped_upstream = True
        _trace(upstream, active)
    active.discard(id(node))

    identities = {upstream.identity for upstream in node.upstream}
    if mapped_upstream or len(identities) < len(node.upstream):
        _blend(node)
    else:
        _copy(node)
    node.traced = True


def _copy(node: Node) -> None:
    # deepest mapped level: the node's own tables are already final
    table = node.segments or []
    for line in table:
        for segment in line:
            if len(segment) >= 4:
                node.upstream_at(segment[1])
            if len(segment) == 5:
                node.name_at(segment[4])

    assert node.mapping is not None
    node.resolved_sources.extend(node.upstream)
    node.resolved_names.extend(node.mapping.names)
    node.resolved_segments = [list(line) for line in table]
    logger.debug("Copied %s: %d source(s), %d name(s)", node, len(node.resolved_sources), len(node.resolved_names))


def _blend(node: Node) -> None:
    table: SegmentTable = []
    dropped = 0
    for line in node.segments or []:
        resolved: SegmentLine = []
        for segment in line:
            if len(segment) < 4:
                resolved.append(segment)
                continue
            found = _resolve_segment(node, segment)
            if found is None:
                dropped += 1
                continue
            resolved.append(_rewrite(node, segment[0], found))
        table.append(resolved)

    node.resolved_segments = table
    logger.debug(
        "Blended %s: %d source(s), %d name(s), %d unresolved segment(s) dropped",
        node,
        len(node.resolved_sources),
        len(node.resolved_names),
        dropped,
    )


def _resolve_segment(node: Node, segment: Segment) -> Trace | None:
    upstream = node.upstream_at(segment[1])
    own_name = node.name_at(segment[4]) if len(segment) == 5 else None
    if upstream.is_terminus:
        return Trace(origin=upstream, line=segment[2], column=segment[3], name=own_name)

    found = upstream.locate(segment[2], segment[3])
    if found is None:
        return None
    if found.name is None and own_name is not None:
        return Trace(origin=found.origin, line=found.line, column=found.column, name=own_name)
    return found


def _rewrite(node: Node, generated_column: int, found: Trace) -> Segment:
    source_index = node.source_index(found.origin)
    if found.name is None:
        return (generated_column, source_index, found.line, found.column)
    return (generated_column, source_index, found.line, found.column, node.name_index(found.name))
