"""Input mapping, composite artifact and position records."""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from typing import Any

from sourcechain.errors import MapFormatError


@dataclass(frozen=True)
class Position:
    """An origin position; line and column are zero-based."""

    source: str | None
    line: int
    column: int
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize the position to a JSON-compatible mapping."""
        return {
            "source": self.source,
            "line": self.line,
            "column": self.column,
            "name": self.name,
        }


@dataclass
class MappingData:
    """A parsed compact mapping as supplied by a caller or a discovery hook."""

    mappings: str
    sources: list[str | None] = field(default_factory=list)
    names: list[str] = field(default_factory=list)
    sources_content: list[str | None] = field(default_factory=list)
    source_root: str = ""
    file: str | None = None
    version: int = 3

    @classmethod
    def coerce(cls, value: Any, *, file: str | None = None) -> MappingData:
        """Build from JSON text, a decoded dict, or an existing instance."""
        if isinstance(value, MappingData):
            return value
        if isinstance(value, (bytes, bytearray)):
            value = value.decode("utf-8")
        if isinstance(value, str):
            try:
                value = json.loads(_strip_xssi_prefix(value))
            except ValueError as exc:
                raise MapFormatError(
                    code="MAP001",
                    message=f"Mapping is not valid JSON: {exc}",
                    file=file,
                    hint="Pass a decoded mapping object or valid JSON text.",
                ) from exc
        if not isinstance(value, dict):
            raise MapFormatError(
                code="MAP002",
                message=f"Mapping must be a JSON object, got {type(value).__name__}.",
                file=file,
            )
        return cls.from_dict(value, file=file)

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, file: str | None = None) -> MappingData:
        """Deserialize and shape-check a compact mapping dict."""
        version = data.get("version", 3)
        if version != 3:
            raise MapFormatError(
                code="MAP005",
                message=f"Unsupported mapping version {version!r}.",
                file=file,
                hint="Only version 3 maps are supported.",
            )

        mappings = data.get("mappings")
        if not isinstance(mappings, str):
            raise MapFormatError(
                code="MAP002",
                message="Mapping field 'mappings' must be a string.",
                file=file,
                hint="Indexed maps with 'sections' are not supported.",
            )

        sources = _optional_list(data, "sources", file)
        names = _optional_list(data, "names", file)
        sources_content = _optional_list(data, "sourcesContent", file)
        source_root = data.get("sourceRoot") or ""
        if not isinstance(source_root, str):
            raise MapFormatError(code="MAP002", message="Mapping field 'sourceRoot' must be a string.", file=file)

        padded_content = list(sources_content[: len(sources)])
        padded_content.extend([None] * (len(sources) - len(padded_content)))

        return cls(
            mappings=mappings,
            sources=[None if item is None else str(item) for item in sources],
            names=[str(item) for item in names],
            sources_content=padded_content,
            source_root=source_root,
            file=data.get("file") or None,
            version=3,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize the mapping with compact-map field names."""
        payload: dict[str, Any] = {
            "version": self.version,
            "sources": list(self.sources),
            "names": list(self.names),
            "mappings": self.mappings,
        }
        if self.file is not None:
            payload["file"] = self.file
        if self.source_root:
            payload["sourceRoot"] = self.source_root
        if any(item is not None for item in self.sources_content):
            payload["sourcesContent"] = list(self.sources_content)
        return payload


@dataclass
class SourceMap:
    """Composite mapping produced by flattening a chain."""

    file: str
    source_root: str
    sources: list[str | None]
    sources_content: list[str | None]
    names: list[str]
    mappings: str
    version: int = 3

    def to_dict(self) -> dict[str, Any]:
        """Serialize the artifact with compact-map field names."""
        return {
            "version": self.version,
            "file": self.file,
            "sourceRoot": self.source_root,
            "sources": list(self.sources),
            "sourcesContent": list(self.sources_content),
            "names": list(self.names),
            "mappings": self.mappings,
        }

    def to_json(self) -> str:
        """Serialize the artifact to compact JSON text."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    def to_url(self) -> str:
        """Encode the artifact as a base64 `data:` URI."""
        encoded = base64.b64encode(self.to_json().encode("utf-8")).decode("ascii")
        return f"data:application/json;charset=utf-8;base64,{encoded}"

    def comment(self, url: str | None = None, *, block: bool = False) -> str:
        """Return a `sourceMappingURL` directive pointing at `url` (inline when omitted)."""
        target = url if url is not None else self.to_url()
        if block:
            return f"/*# sourceMappingURL={target} */"
        return f"//# sourceMappingURL={target}"


def _optional_list(data: dict[str, Any], key: str, file: str | None) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise MapFormatError(
            code="MAP002",
            message=f"Mapping field '{key}' must be a list.",
            file=file,
        )
    return value


def _strip_xssi_prefix(text: str) -> str:
    if text.startswith(")]}'"):
        _, _, rest = text.partition("\n")
        return rest
    return text
