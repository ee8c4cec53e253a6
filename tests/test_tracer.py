from __future__ import annotations

import unittest
from typing import Any

from sourcechain import vlq
from sourcechain.errors import ChainIntegrityError, MapFormatError
from sourcechain.node import Node
from sourcechain.tracer import trace


def make_map(segments: list[list[tuple[int, ...]]], sources: list[str | None], names: list[str] | None = None) -> dict[str, Any]:
    return {
        "version": 3,
        "sources": sources,
        "names": names or [],
        "mappings": vlq.encode(segments),
    }


class TracerTests(unittest.TestCase):
    def test_terminus_is_not_traced(self) -> None:
        self.assertIsNone(trace(Node(file="a.js", content="x")))

    def test_single_level_copies_own_tables(self) -> None:
        node = Node(file="b.js", mapping=make_map([[(0, 0, 5, 2, 0)]], ["c.js"], ["x"]))
        self.assertIs(trace(node), node)
        self.assertEqual([origin.file for origin in node.resolved_sources], ["c.js"])
        self.assertEqual(node.resolved_names, ["x"])
        self.assertEqual(node.resolved_segments, [[(0, 0, 5, 2, 0)]])

    def test_three_level_chain_reaches_oldest_origin(self) -> None:
        c = Node(file="c.js")
        b = Node(file="b.js", mapping=make_map([[(0, 0, 5, 2, 0)]], ["c.js"], ["x"]), upstream=[c])
        a = Node(file="a.js", mapping=make_map([[(0, 0, 0, 0)]], ["b.js"]), upstream=[b])

        trace(a)
        self.assertEqual(a.resolved_segments, [[(0, 0, 5, 2, 0)]])
        self.assertEqual(a.resolved_sources, [c])
        self.assertEqual(a.resolved_names, ["x"])

    def test_gap_segment_is_dropped_without_reordering(self) -> None:
        c = Node(file="c.js")
        b = Node(file="b.js", mapping=make_map([[(0,), (5, 0, 1, 0)]], ["c.js"]), upstream=[c])
        a = Node(
            file="a.js",
            mapping=make_map(
                [
                    [(0, 0, 0, 6), (3, 0, 0, 2), (8, 0, 0, 5)],
                    [(0,), (2, 0, 3, 0)],
                ],
                ["b.js"],
            ),
            upstream=[b],
        )

        trace(a)
        assert a.resolved_segments is not None
        self.assertEqual(a.resolved_segments[0], [(0, 0, 1, 1), (8, 0, 1, 0)])
        # b has no line 3, so only the marker survives
        self.assertEqual(a.resolved_segments[1], [(0,)])

    def test_same_origin_and_name_are_stored_once(self) -> None:
        c = Node(file="c.js")
        b = Node(file="b.js", mapping=make_map([[(0, 0, 0, 0, 0)]], ["c.js"], ["foo"]), upstream=[c])
        a = Node(file="a.js", mapping=make_map([[(0, 0, 0, 0), (4, 0, 0, 0)]], ["b.js"]), upstream=[b])

        trace(a)
        self.assertEqual(a.resolved_segments, [[(0, 0, 0, 0, 0), (4, 0, 0, 0, 0)]])
        self.assertEqual(a.resolved_names, ["foo"])
        self.assertEqual(len(a.resolved_sources), 1)

    def test_origins_from_several_upstreams_share_one_table(self) -> None:
        shared = Node(file="shared.ts")
        left = Node(file="left.js", mapping=make_map([[(0, 0, 1, 0)]], ["shared.ts"]), upstream=[shared])
        right = Node(
            file="right.js",
            mapping=make_map([[(0, 0, 2, 0), (3, 1, 0, 0)]], ["shared.ts", "other.ts"]),
            upstream=[shared, Node(file="other.ts")],
        )
        bundle = Node(
            file="bundle.js",
            mapping=make_map([[(0, 0, 0, 0)], [(0, 1, 0, 0), (6, 1, 0, 3)]], ["left.js", "right.js"]),
            upstream=[left, right],
        )

        trace(bundle)
        self.assertEqual([origin.file for origin in bundle.resolved_sources], ["shared.ts", "other.ts"])
        self.assertEqual(
            bundle.resolved_segments,
            [[(0, 0, 1, 0)], [(0, 0, 2, 0), (6, 1, 0, 0)]],
        )

    def test_deeper_name_wins_and_own_name_is_fallback(self) -> None:
        c = Node(file="c.js")
        b = Node(
            file="b.js",
            mapping=make_map([[(0, 0, 0, 0, 0), (4, 0, 0, 4)]], ["c.js"], ["deep"]),
            upstream=[c],
        )
        a = Node(
            file="a.js",
            mapping=make_map([[(0, 0, 0, 0, 0), (2, 0, 0, 4, 0)]], ["b.js"], ["own"]),
            upstream=[b],
        )

        trace(a)
        self.assertEqual(a.resolved_names, ["deep", "own"])
        self.assertEqual(a.resolved_segments, [[(0, 0, 0, 0, 0), (2, 0, 0, 4, 1)]])

    def test_tracing_twice_is_idempotent(self) -> None:
        c = Node(file="c.js")
        b = Node(file="b.js", mapping=make_map([[(0, 0, 0, 0), (4, 0, 1, 2)]], ["c.js"]), upstream=[c])
        a = Node(file="a.js", mapping=make_map([[(0, 0, 0, 0), (2, 0, 0, 5)]], ["b.js"]), upstream=[b])

        trace(a)
        first = vlq.encode(a.resolved_segments or [])
        trace(a)
        self.assertEqual(vlq.encode(a.resolved_segments or []), first)

    def test_shared_ancestor_is_traced_once(self) -> None:
        c = Node(file="c.js")
        shared = Node(file="shared.js", mapping=make_map([[(0, 0, 0, 0)]], ["c.js"]), upstream=[c])
        first = Node(file="one.js", mapping=make_map([[(0, 0, 0, 0)]], ["shared.js"]), upstream=[shared])
        second = Node(file="two.js", mapping=make_map([[(0, 0, 0, 0)]], ["shared.js"]), upstream=[shared])

        trace(first)
        resolved = shared.resolved_segments
        trace(second)
        self.assertIs(shared.resolved_segments, resolved)
        self.assertEqual(first.resolved_segments, second.resolved_segments)

    def test_duplicate_termini_are_merged(self) -> None:
        c = Node(file="c.js")
        node = Node(file="b.js", mapping=make_map([[(0, 0, 0, 0), (2, 1, 0, 2)]], ["c.js", "c.js"]), upstream=[c, c])

        trace(node)
        self.assertEqual(node.resolved_sources, [c])
        self.assertEqual(node.resolved_segments, [[(0, 0, 0, 0), (2, 0, 0, 2)]])

    def test_equivalent_paths_are_merged(self) -> None:
        dotted = Node(file="./c.js")
        plain = Node(file="c.js")
        node = Node(file="b.js", mapping=make_map([[(0, 0, 0, 0), (2, 1, 0, 2)]], ["./c.js", "c.js"]), upstream=[dotted, plain])

        trace(node)
        self.assertEqual(node.resolved_sources, [dotted])
        self.assertEqual(node.resolved_segments, [[(0, 0, 0, 0), (2, 0, 0, 2)]])

    def test_anonymous_sources_stay_distinct(self) -> None:
        first = Node(content="one")
        second = Node(content="two")
        node = Node(mapping=make_map([[(0, 0, 0, 0), (2, 1, 0, 0)]], [None, None]), upstream=[first, second])

        trace(node)
        self.assertEqual(node.resolved_sources, [first, second])

    def test_out_of_range_source_index_is_rejected(self) -> None:
        node = Node(file="b.js", mapping=make_map([[(0, 3, 0, 0)]], ["c.js"]))
        with self.assertRaises(MapFormatError) as ctx:
            trace(node)
        self.assertEqual(ctx.exception.code, "MAP006")

    def test_cycle_in_hand_built_graph_is_rejected(self) -> None:
        a = Node(file="a.js", mapping=make_map([[(0, 0, 0, 0)]], ["b.js"]))
        b = Node(file="b.js", mapping=make_map([[(0, 0, 0, 0)]], ["a.js"]), upstream=[a])
        a.upstream = [b]
        with self.assertRaises(ChainIntegrityError) as ctx:
            trace(a)
        self.assertEqual(ctx.exception.code, "CHN003")


class NodeTests(unittest.TestCase):
    def test_default_upstream_follows_source_root_and_content(self) -> None:
        mapping = make_map([[(0, 0, 0, 0)]], ["x.ts"])
        mapping["sourceRoot"] = "src"
        mapping["sourcesContent"] = ["let x;"]
        node = Node(file="dist/app.js", mapping=mapping)

        [upstream] = node.upstream
        self.assertEqual(upstream.file, "dist/src/x.ts")
        self.assertEqual(upstream.content, "let x;")
        self.assertTrue(upstream.is_terminus)

    def test_locate_uses_covering_segment_and_offset(self) -> None:
        c = Node(file="c.js", content="let x = 1;\nfoo();")
        node = Node(file="b.js", mapping=make_map([[(2, 0, 0, 4)]], ["c.js"]), upstream=[c])

        self.assertIsNone(node.locate(0, 1))
        found = node.locate(0, 5)
        assert found is not None
        self.assertIs(found.origin, c)
        self.assertEqual((found.line, found.column), (0, 7))
        self.assertIsNone(node.locate(0, 9))
        self.assertIsNone(node.locate(3, 0))


if __name__ == "__main__":
    unittest.main()
