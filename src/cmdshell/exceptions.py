"""
Exception hierarchy for the command shell.

Provides structured exceptions with JSON serialization support. The dispatcher
turns these into DispatchResult failures; they only escape to the host from
construction-time APIs (manifest loading, registry building).
"""

from dataclasses import dataclass, asdict
from typing import Any, Optional


@dataclass
class ShellError(Exception):
    """Base exception for shell errors."""

    message: str

    def __str__(self) -> str:
        """Return human-readable error message."""
        return self.message

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass
class ConfigError(ShellError):
    """Invalid shell configuration or command manifest."""

    source: Optional[str] = None

    def __str__(self) -> str:
        if self.source:
            return f"Error loading {self.source}: {self.message}"
        return self.message


@dataclass
class RegistryFrozenError(ShellError):
    """Registration attempted after the registry was frozen."""

    command_name: str = ""


@dataclass
class CoercionError(ShellError):
    """A token is not a valid literal for the requested type."""

    token: str = ""
    expected_type: Any = None

    def __str__(self) -> str:
        return f"Cannot convert '{self.token}' to {type_label(self.expected_type)}: {self.message}"

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "token": self.token,
            "expected_type": type_label(self.expected_type),
        }


@dataclass
class UnsupportedTypeError(ShellError):
    """The coercer has no conversion for the requested type."""

    expected_type: Any = None

    def __str__(self) -> str:
        return f"Unsupported argument type: {type_label(self.expected_type)}"

    def to_dict(self) -> dict:
        return {"message": self.message, "expected_type": type_label(self.expected_type)}


def type_label(value: Any) -> str:
    """Readable name for a parameter type designator."""
    name = getattr(value, "value", None)
    if isinstance(name, str):
        return name
    if isinstance(value, str):
        return value
    return getattr(value, "__name__", None) or repr(value)
