"""Top-level orchestration: load a chain, trace it, assemble the artifact."""

from __future__ import annotations

import inspect
from typing import Any

from sourcechain import vlq
from sourcechain.errors import ConfigurationError
from sourcechain.loader import LoadCache, is_degenerate, load_chain, load_chain_async
from sourcechain.logger import get_logger
from sourcechain.node import Node
from sourcechain.options import ResolveOptions
from sourcechain.paths import relative_to, slash
from sourcechain.portal import Portal
from sourcechain.source_map import SourceMap
from sourcechain.tracer import trace

logger = get_logger(__name__)


def load(chain: Any, options: ResolveOptions | dict[str, Any] | None = None, **kwargs: Any) -> Node:
    """Load a chain and return its outermost node, untraced."""
    resolved_options = ResolveOptions.from_value(options, **kwargs)
    return load_chain(chain, resolved_options, LoadCache())[0]


async def load_async(chain: Any, options: ResolveOptions | dict[str, Any] | None = None, **kwargs: Any) -> Node:
    """Async variant of `load`; hooks may be coroutine functions."""
    resolved_options = ResolveOptions.from_value(options, **kwargs)
    nodes = await load_chain_async(chain, resolved_options, LoadCache())
    return nodes[0]


def resolve(chain: Any, options: ResolveOptions | dict[str, Any] | None = None, **kwargs: Any) -> SourceMap | None:
    """Flatten a chain into one composite map.

    Returns None when the chain has nothing to merge: a lone original
    source, or a single mapping whose sources are all originals.
    """
    resolved_options = ResolveOptions.from_value(options, **kwargs)
    root = load_chain(chain, resolved_options, LoadCache())[0]
    if is_degenerate(root):
        logger.debug("Nothing to flatten for %s", root)
        return None
    trace(root)
    sources_content = _sources_content(root, resolved_options)
    awaitables = [content for content in sources_content if inspect.isawaitable(content)]
    if awaitables:
        for content in awaitables:
            if inspect.iscoroutine(content):
                content.close()
        raise ConfigurationError(
            code="CFG003",
            message="read_file returned an awaitable in synchronous mode.",
            hint="Use resolve_async with async hooks.",
        )
    return assemble(root, resolved_options, sources_content)


async def resolve_async(
    chain: Any,
    options: ResolveOptions | dict[str, Any] | None = None,
    **kwargs: Any,
) -> SourceMap | None:
    """Async variant of `resolve`; loading and content reads are awaited in order."""
    resolved_options = ResolveOptions.from_value(options, **kwargs)
    nodes = await load_chain_async(chain, resolved_options, LoadCache())
    root = nodes[0]
    if is_degenerate(root):
        logger.debug("Nothing to flatten for %s", root)
        return None
    trace(root)
    sources_content: list[Any] = []
    for content in _sources_content(root, resolved_options):
        if inspect.isawaitable(content):
            content = await content
        sources_content.append(content)
    return assemble(root, resolved_options, sources_content)


def open_portal(chain: Any, options: ResolveOptions | dict[str, Any] | None = None, **kwargs: Any) -> Portal:
    """Load and trace a chain, returning a point-query function."""
    return Portal(load(chain, options, **kwargs))


async def open_portal_async(
    chain: Any,
    options: ResolveOptions | dict[str, Any] | None = None,
    **kwargs: Any,
) -> Portal:
    """Async variant of `open_portal`."""
    return Portal(await load_async(chain, options, **kwargs))


def assemble(root: Node, options: ResolveOptions, sources_content: list[str | None] | None = None) -> SourceMap:
    """Serialize a traced root node into the composite artifact."""
    if not root.traced:
        trace(root)

    paths = [origin.file for origin in root.resolved_sources]
    source_root = ""
    if (paths and paths[0] is not None) or len(paths) > 1:
        source_root = slash(options.source_root)

    if sources_content is None:
        sources_content = _sources_content(root, options)

    mappings = vlq.encode(root.resolved_segments or [])
    logger.debug("Assembled map for %s with %d source(s)", options.generated_file or "<unnamed>", len(paths))
    return SourceMap(
        file=options.generated_file,
        source_root=source_root,
        sources=[None if path is None else relative_to(source_root, slash(path)) for path in paths],
        sources_content=list(sources_content),
        names=list(root.resolved_names),
        mappings=mappings,
    )


def _sources_content(root: Node, options: ResolveOptions) -> list[Any]:
    if not options.include_content:
        return [None] * len(root.resolved_sources)
    contents: list[Any] = []
    for origin in root.resolved_sources:
        if origin.content is not None:
            contents.append(origin.content)
        elif origin.file is not None:
            contents.append(options.read_file(origin.file))
        else:
            contents.append(None)
    return contents
