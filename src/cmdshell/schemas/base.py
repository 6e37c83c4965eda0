"""Common schema utilities and base classes."""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class SchemaBase(BaseModel):
    """Base model with common config for shell schemas.

    Strings are kept verbatim: a prompt of ``"> "`` or a delimiter of ``" "``
    is meaningful and must not be stripped.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=False)

    def json_schema(self) -> Dict[str, Any]:
        """Return the JSON schema for this model class."""
        return self.model_json_schema()  # pragma: no cover
