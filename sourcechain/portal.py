"""Point queries against a traced chain without re-encoding it."""

from __future__ import annotations

from sourcechain.node import Node
from sourcechain.source_map import Position
from sourcechain.tracer import trace


class Portal:
    """Callable `(line, column) -> Position | None` over one root node.

    Lines and columns are zero-based on both sides. A column that falls
    between two segments is shifted by its distance from the covering
    segment's start; this is only exact for spans that were copied
    unchanged, so treat mid-segment answers as best effort.
    """

    def __init__(self, root: Node) -> None:
        self.root = root
        trace(root)

    def __call__(self, line: int, column: int) -> Position | None:
        return self.trace(line, column)

    def trace(self, line: int, column: int) -> Position | None:
        """Resolve a generated position of the root to its oldest origin.

        An unmapped root answers with its own position and no source.
        """
        if self.root.is_terminus:
            if not self.root.fits(line, column):
                return None
            return Position(source=None, line=line, column=column)
        found = self.root.locate(line, column)
        if found is None:
            return None
        return Position(source=found.origin.file, line=found.line, column=found.column, name=found.name)
