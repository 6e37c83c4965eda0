"""Command schemas: primitive parameter types and declarative command entries."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, List, Optional

from pydantic import ConfigDict, Field, model_validator

from .base import SchemaBase


class PrimitiveType(str, Enum):
    BOOL = "bool"
    BYTE = "byte"
    SHORT = "short"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    STRING = "string"

    @classmethod
    def resolve(cls, value: Any) -> Optional["PrimitiveType"]:
        """Normalize a type designator to a PrimitiveType.

        Accepts a member, a (case-insensitive) name or alias, or one of the
        builtins ``bool``, ``int``, ``float`` and ``str``. Returns None when the
        value designates no supported type.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            key = _TYPE_ALIASES.get(key, key)
            try:
                return cls(key)
            except ValueError:
                return None
        if isinstance(value, type):
            return _BUILTIN_TYPES.get(value)
        return None


_TYPE_ALIASES = {
    "boolean": "bool",
    "integer": "int",
    "str": "string",
}

# bool is checked by identity, so it never collides with int here.
_BUILTIN_TYPES = {
    bool: PrimitiveType.BOOL,
    int: PrimitiveType.INT,
    float: PrimitiveType.DOUBLE,
    str: PrimitiveType.STRING,
}


class CommandSpec(SchemaBase):
    """One entry of a declarative command set.

    Exactly one of ``handler`` (an in-process callable) or ``entrypoint``
    (``"module.path:attribute"``) must be supplied. ``name`` defaults to the
    handler's own ``__name__`` when omitted.
    """

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    name: Optional[str] = Field(default=None)
    parameter_types: List[Any] = Field(default_factory=list)
    handler: Optional[Callable[..., Any]] = Field(default=None)
    entrypoint: Optional[str] = Field(default=None)
    help_text: Optional[str] = Field(default=None, alias="help")

    @model_validator(mode="after")
    def _check_target(self) -> "CommandSpec":
        if (self.handler is None) == (self.entrypoint is None):
            raise ValueError("exactly one of 'handler' or 'entrypoint' is required")
        if self.entrypoint is not None and ":" not in self.entrypoint:
            raise ValueError(f"invalid entrypoint format: {self.entrypoint!r} (expected 'module:attribute')")
        return self
