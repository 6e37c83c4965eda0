"""Shell-wide configuration schema."""

from __future__ import annotations

import re

from pydantic import ConfigDict, Field, field_validator

from .base import SchemaBase


class ShellConfig(SchemaBase):
    """Prompt, delimiter and flags, loaded once when the shell is built.

    ``argument_delimiter`` is embedded in the tokenizer pattern verbatim.
    Values containing regex metacharacters must already be escaped by the
    caller; the shell only checks that the resulting pattern compiles.

    ``require_login`` is carried for an external authentication collaborator
    and is not enforced by the shell.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    prompt: str = Field(default=">")
    argument_delimiter: str = Field(default=" ")
    timestamp_enabled: bool = Field(default=False)
    require_login: bool = Field(default=False)

    @field_validator("argument_delimiter")
    @classmethod
    def _check_delimiter(cls, value: str) -> str:
        if not value:
            raise ValueError("argument_delimiter must be a non-empty string")
        try:
            re.compile(value + r"\w+")
        except re.error as exc:
            raise ValueError(f"argument_delimiter {value!r} does not form a valid pattern: {exc}")
        return value
