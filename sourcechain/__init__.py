"""Flatten chains of source maps into one composite map."""

from __future__ import annotations

from typing import Any


__all__ = [
    "Node",
    "Portal",
    "Position",
    "ResolveOptions",
    "SourceMap",
    "load",
    "open_portal",
    "open_portal_async",
    "resolve",
    "resolve_async",
    "trace",
]


def resolve(*args: Any, **kwargs: Any):
    from sourcechain.main import resolve as _resolve

    return _resolve(*args, **kwargs)


def resolve_async(*args: Any, **kwargs: Any):
    from sourcechain.main import resolve_async as _resolve_async

    return _resolve_async(*args, **kwargs)


def open_portal(*args: Any, **kwargs: Any):
    from sourcechain.main import open_portal as _open_portal

    return _open_portal(*args, **kwargs)


def open_portal_async(*args: Any, **kwargs: Any):
    from sourcechain.main import open_portal_async as _open_portal_async

    return _open_portal_async(*args, **kwargs)


def load(*args: Any, **kwargs: Any):
    from sourcechain.main import load as _load

    return _load(*args, **kwargs)


def trace(*args: Any, **kwargs: Any):
    from sourcechain.tracer import trace as _trace

    return _trace(*args, **kwargs)


def __getattr__(name: str):
    if name == "Node":
        from sourcechain.node import Node

        return Node
    if name == "Portal":
        from sourcechain.portal import Portal

        return Portal
    if name in ("Position", "SourceMap"):
        from sourcechain import source_map

        return getattr(source_map, name)
    if name == "ResolveOptions":
        from sourcechain.options import ResolveOptions

        return ResolveOptions
    raise AttributeError(name)
