"""Chain description, normalization and loading.

Loading is written once as a generator that yields I/O requests
(`_ReadRequest`, `_MapRequest`) and receives their results. The sync and
async drivers answer those requests through the caller's hooks, so both
modes build the node graph in the same strictly sequential order.
"""

from __future__ import annotations

import inspect
import os
from dataclasses import dataclass, field
from typing import Any, Generator, Union

from sourcechain.errors import ChainIntegrityError, ConfigurationError
from sourcechain.logger import get_logger
from sourcechain.node import Node
from sourcechain.options import ResolveOptions
from sourcechain.paths import normalize
from sourcechain.source_map import MappingData

logger = get_logger(__name__)


@dataclass(frozen=True)
class TextLink:
    """Raw generated text with no file identity and no inline mapping."""

    text: str


@dataclass(frozen=True)
class DescribedLink:
    """A chain link with optional content, mapping and file identity."""

    content: str | None = None
    map: Any = None
    file: str | None = None


ChainLink = Union[TextLink, DescribedLink]


@dataclass
class LoadCache:
    """Per-load memo of file contents, discovered maps and source nodes."""

    content_by_path: dict[str, str | None] = field(default_factory=dict)
    map_by_path: dict[str, Any] = field(default_factory=dict)
    node_by_path: dict[str, Node] = field(default_factory=dict)


@dataclass(frozen=True)
class _ReadRequest:
    path: str


@dataclass(frozen=True)
class _MapRequest:
    node: Node


_Steps = Generator[Union[_ReadRequest, _MapRequest], Any, Any]


def normalize_link(value: Any) -> ChainLink:
    """Normalize one caller-supplied chain link."""
    if isinstance(value, (TextLink, DescribedLink)):
        return value
    if isinstance(value, str):
        return TextLink(text=value)
    if isinstance(value, os.PathLike):
        return DescribedLink(file=os.fspath(value))
    if isinstance(value, dict):
        unknown = set(value) - {"content", "map", "file"}
        if unknown:
            raise ChainIntegrityError(
                code="CHN004",
                message=f"Unsupported chain link keys: {', '.join(sorted(unknown))}.",
                hint="A chain link accepts 'content', 'map' and 'file'.",
            )
        file = value.get("file")
        return DescribedLink(
            content=value.get("content"),
            map=value.get("map"),
            file=None if file is None else os.fspath(file),
        )
    raise ChainIntegrityError(
        code="CHN004",
        message=f"Unsupported chain link type '{type(value).__name__}'.",
        hint="Use a text string, a path, a {'content', 'map', 'file'} mapping, or a link object.",
    )


def normalize_chain(chain: Any) -> list[ChainLink]:
    """Normalize a chain description into outermost-first links."""
    if not isinstance(chain, (list, tuple)):
        chain = [chain]
    links = [normalize_link(item) for item in chain]
    if not links:
        raise ChainIntegrityError(
            code="CHN002",
            message="Chain is empty.",
            hint="Pass at least the generated artifact.",
        )
    return links


def is_degenerate(root: Node) -> bool:
    """True when flattening `root` could not merge anything."""
    if root.is_terminus:
        return True
    return all(upstream.is_terminus for upstream in root.upstream)


def load_chain(chain: Any, options: ResolveOptions | None = None, cache: LoadCache | None = None) -> list[Node]:
    """Load and link a chain synchronously; returns outermost-first nodes."""
    options = options or ResolveOptions()
    steps = _ChainBuilder(cache or LoadCache()).build(normalize_chain(chain))
    try:
        request = next(steps)
        while True:
            result = _perform(request, options)
            if inspect.isawaitable(result):
                if inspect.iscoroutine(result):
                    result.close()
                raise ConfigurationError(
                    code="CFG003",
                    message="A loading hook returned an awaitable in synchronous mode.",
                    hint="Use the async entry points with async read_file/get_map hooks.",
                )
            request = steps.send(result)
    except StopIteration as stop:
        return stop.value


async def load_chain_async(
    chain: Any,
    options: ResolveOptions | None = None,
    cache: LoadCache | None = None,
) -> list[Node]:
    """Load and link a chain, awaiting each hook result before continuing."""
    options = options or ResolveOptions()
    steps = _ChainBuilder(cache or LoadCache()).build(normalize_chain(chain))
    try:
        request = next(steps)
        while True:
            result = _perform(request, options)
            if inspect.isawaitable(result):
                result = await result
            request = steps.send(result)
    except StopIteration as stop:
        return stop.value


def _perform(request: _ReadRequest | _MapRequest, options: ResolveOptions) -> Any:
    if isinstance(request, _ReadRequest):
        return options.read_file(request.path)
    return options.get_map(request.node)


class _ChainBuilder:
    def __init__(self, cache: LoadCache) -> None:
        self.cache = cache

    def build(self, links: list[ChainLink]) -> _Steps:
        nodes: list[Node] = []
        successor: Node | None = None
        # innermost link first so each node can point at its successor
        for position in range(len(links) - 1, -1, -1):
            node = yield from self._link_node(links[position])
            if successor is not None:
                if node.mapping is None:
                    raise ChainIntegrityError(
                        code="CHN001",
                        message=f"Chain link {position} has no mapping; only the last link can be an original source.",
                        file=node.file,
                        hint="Supply a map for every link except the last, or drop the trailing links.",
                    )
                node.upstream = [successor] * max(1, len(node.mapping.sources))
            nodes.append(node)
            successor = node

        nodes.reverse()
        yield from self._extend(nodes[-1], stack=())
        logger.debug("Loaded chain of %d link(s) ending at %s", len(nodes), nodes[-1])
        return nodes

    def _link_node(self, link: ChainLink) -> _Steps:
        if isinstance(link, TextLink):
            node = Node(content=link.text)
            inline_map = None
        else:
            content = link.content
            if content is None and link.file is not None:
                content = yield from self._read(link.file)
            node = Node(file=link.file, content=content)
            inline_map = link.map

        mapping = inline_map
        if mapping is None:
            mapping = yield from self._discover(node)
        if mapping is not None:
            node.mapping = MappingData.coerce(mapping, file=node.file)
        return node

    def _extend(self, node: Node, stack: tuple[str, ...]) -> _Steps:
        if node.mapping is None:
            return
        if node.file is not None:
            stack = stack + (normalize(node.file),)

        upstream: list[Node] = []
        for path, inline_content in zip(node.source_paths(), node.mapping.sources_content):
            if path is not None and path in stack:
                logger.warning("Cycle detected at %s, treating it as an original source", path)
                upstream.append(Node(file=path, content=inline_content))
                continue
            if path is not None and path in self.cache.node_by_path:
                upstream.append(self.cache.node_by_path[path])
                continue

            content = inline_content
            if content is None and path is not None:
                content = yield from self._read(path)
            child = Node(file=path, content=content)
            if path is not None:
                self.cache.node_by_path[path] = child

            mapping = yield from self._discover(child)
            if mapping is not None:
                child.mapping = MappingData.coerce(mapping, file=path)
                logger.debug("Discovered mapping for %s", child)
                yield from self._extend(child, stack)
            upstream.append(child)

        node.upstream = upstream

    def _read(self, path: str) -> _Steps:
        if path in self.cache.content_by_path:
            return self.cache.content_by_path[path]
        content = yield _ReadRequest(path)
        self.cache.content_by_path[path] = content
        return content

    def _discover(self, node: Node) -> _Steps:
        if node.file is not None and node.file in self.cache.map_by_path:
            return self.cache.map_by_path[node.file]
        mapping = yield _MapRequest(node)
        if node.file is not None:
            self.cache.map_by_path[node.file] = mapping
        return mapping
