"""Path normalization helpers shared by loading and assembly."""

from __future__ import annotations

import ntpath
import os
import posixpath
import re
from urllib.parse import urljoin


_URL_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


def slash(path: str) -> str:
    """Convert Windows separators to forward slashes."""
    return path.replace("\\", "/")


def is_url(path: str) -> bool:
    return bool(_URL_RE.match(path)) or path.startswith("data:")


def is_absolute(path: str) -> bool:
    """True for POSIX absolute paths and Windows drive or UNC paths."""
    if not path:
        return False
    return posixpath.isabs(slash(path)) or ntpath.isabs(path)


def resolve_source(base_file: str | None, source_root: str | None, source: str | None) -> str | None:
    """Resolve a map `sources` entry against its `sourceRoot` and the map owner's directory."""
    if source is None:
        return None
    source = slash(source)
    if is_url(source):
        return source
    if source_root and not is_absolute(source):
        source_root = slash(source_root)
        if is_url(source_root):
            return source_root + source if source_root.endswith("/") else f"{source_root}/{source}"
        source = posixpath.join(source_root, source)
    return join_to_owner(base_file, source)


def join_to_owner(base_file: str | None, path: str) -> str:
    """Resolve `path` against the directory of `base_file`, which may be a URL."""
    path = slash(path)
    if is_url(path):
        return path
    if base_file and _URL_RE.match(base_file):
        return urljoin(slash(base_file), path)
    if base_file and not is_absolute(path):
        path = posixpath.join(posixpath.dirname(slash(base_file)), path)
    return posixpath.normpath(path)


def relative_to(source_root: str, path: str) -> str:
    """Express `path` relative to `source_root` (the current directory when empty)."""
    if is_url(path):
        return path
    start = source_root or os.curdir
    return slash(os.path.relpath(path, start))


def normalize(path: str) -> str:
    if is_url(path):
        return path
    return posixpath.normpath(slash(path))
