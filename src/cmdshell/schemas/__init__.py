"""Schema types for the command shell."""

from .base import SchemaBase
from .command import CommandSpec, PrimitiveType
from .config import ShellConfig

__all__ = [
    "SchemaBase",
    "CommandSpec",
    "PrimitiveType",
    "ShellConfig",
]
