"""Find a node's mapping through its `sourceMappingURL` directive."""

from __future__ import annotations

import base64
import binascii
import re
from typing import Any, Callable
from urllib.parse import unquote

from sourcechain.errors import MapFormatError
from sourcechain.logger import get_logger
from sourcechain.paths import join_to_owner

logger = get_logger(__name__)

_DIRECTIVE_RE = re.compile(
    r"(?://[#@]\s*sourceMappingURL=(?P<line>[^\s'\"]+)\s*$)"
    r"|(?:/\*[#@]\s*sourceMappingURL=(?P<block>[^\s'\"*]+)\s*\*/\s*$)",
    re.MULTILINE,
)


def find_source_mapping_url(content: str | None) -> str | None:
    """Return the URL of the last `sourceMappingURL` directive, if any."""
    if not content:
        return None
    url: str | None = None
    for match in _DIRECTIVE_RE.finditer(content):
        url = match.group("line") or match.group("block")
    return url


def decode_data_url(url: str) -> str:
    """Decode the JSON payload of a `data:` URI."""
    header, sep, payload = url.partition(",")
    if not sep or not header.startswith("data:"):
        raise MapFormatError(
            code="MAP007",
            message="Malformed data URI for mapping.",
            hint="Expected data:application/json[;charset=utf-8][;base64],<payload>.",
        )
    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise MapFormatError(
                code="MAP007",
                message=f"Invalid base64 payload in data URI: {exc}",
            ) from exc
    return unquote(payload)


def map_from_url(url: str, base_file: str | None, read_file: Callable[[str], Any]) -> Any:
    """Load the mapping a directive points at.

    Returns JSON text for data URIs, otherwise whatever `read_file` returns
    for the path resolved against the directory of `base_file`.
    """
    if url.startswith("data:"):
        return decode_data_url(url)
    path = join_to_owner(base_file, unquote(url))
    logger.debug("Reading mapping %s", path)
    return read_file(path)


def make_map_discoverer(read_file: Callable[[str], Any]) -> Callable[[Any], Any]:
    """Build a `get_map` hook that follows `sourceMappingURL` directives.

    The hook works with a synchronous `read_file`; when `read_file` is a
    coroutine function the hook returns awaitables for the async loaders.
    """

    def get_map(node: Any) -> Any:
        url = find_source_mapping_url(node.content)
        if url is None:
            return None
        return map_from_url(url, node.file, read_file)

    return get_map
