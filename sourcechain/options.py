"""Resolve options and caller-supplied I/O hooks."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Awaitable, Callable, Union

from sourcechain.errors import ConfigurationError
from sourcechain.paths import is_absolute


ReadFile = Callable[[str], Union[str, None, Awaitable[Union[str, None]]]]
GetMap = Callable[[Any], Any]

_CAMEL_KEYS: dict[str, str] = {
    "generatedFile": "generated_file",
    "sourceRoot": "source_root",
    "includeContent": "include_content",
    "readFile": "read_file",
    "getMap": "get_map",
}


def _noop(_: Any) -> None:
    return None


@dataclass
class ResolveOptions:
    """Options for loading, flattening and querying a chain."""

    generated_file: str = ""
    source_root: str = ""
    include_content: bool = True
    read_file: ReadFile = _noop
    get_map: GetMap = _noop

    def __post_init__(self) -> None:
        self.generated_file = self.generated_file or ""
        self.source_root = self.source_root or ""
        if self.read_file is None:
            self.read_file = _noop
        if self.get_map is None:
            self.get_map = _noop
        self.validate()

    def validate(self) -> None:
        """Reject absolute paths where the artifact needs relative ones."""
        if is_absolute(self.generated_file):
            raise ConfigurationError(
                code="CFG001",
                message=f"`generated_file` cannot be absolute: {self.generated_file}",
                hint="Pass the generated file's path relative to where the map will live.",
            )
        if is_absolute(self.source_root):
            raise ConfigurationError(
                code="CFG002",
                message=f"`source_root` cannot be absolute: {self.source_root}",
                hint="Use a path relative to the generated file, or leave it empty.",
            )

    @classmethod
    def from_value(cls, value: Any = None, **overrides: Any) -> ResolveOptions:
        """Normalize None, a dict (snake_case or camelCase keys) or an instance."""
        if isinstance(value, ResolveOptions):
            if not overrides:
                return value
            value = {item.name: getattr(value, item.name) for item in fields(cls)}
        elif value is None:
            value = {}
        elif not isinstance(value, dict):
            raise ConfigurationError(
                code="CFG004",
                message=f"Options must be a mapping or ResolveOptions, got {type(value).__name__}.",
            )

        known = {item.name for item in fields(cls)}
        merged: dict[str, Any] = {}
        for key, item in {**value, **overrides}.items():
            name = _CAMEL_KEYS.get(key, key)
            if name not in known:
                raise ConfigurationError(
                    code="CFG004",
                    message=f"Unknown option '{key}'.",
                    hint=f"Known options: {', '.join(sorted(known))}",
                )
            merged[name] = item
        return cls(**merged)
