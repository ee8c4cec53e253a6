"""Structured diagnostics and exception hierarchy for sourcechain."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Diagnostic:
    """Machine-readable diagnostic emitted by loading, tracing or the CLI."""

    code: str
    message: str
    file: str | None = None
    hint: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize the diagnostic for JSON output."""
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "hint": self.hint,
        }
        if self.file is not None:
            payload["file"] = self.file
        return payload


class ChainError(Exception):
    """Base error carrying a code and the file it concerns, if any."""

    def __init__(self, code: str, message: str, file: str | None = None, hint: str = "") -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.file = file
        self.hint = hint

    def to_diagnostic(self) -> Diagnostic:
        """Convert exception into serializable diagnostic."""
        return Diagnostic(code=self.code, message=self.message, file=self.file, hint=self.hint)

    def __str__(self) -> str:
        if self.file is None:
            return f"[{self.code}] {self.message}"
        return f"[{self.code}] {self.message} ({self.file})"


class ConfigurationError(ChainError):
    """Raised for invalid resolve options."""


class ChainIntegrityError(ChainError):
    """Raised when a chain description cannot be linked or traced."""


class MapFormatError(ChainError):
    """Raised when a mapping fails basic shape checks."""


class CLIError(ChainError):
    """Raised by CLI usage or orchestration failures."""


def format_diagnostic(diag: Diagnostic) -> str:
    """Format diagnostic into a stable human-readable line."""
    suffix = f" {diag.file}" if diag.file else ""
    hint = f" Hint: {diag.hint}" if diag.hint else ""
    return f"{diag.code}{suffix}: {diag.message}{hint}"
