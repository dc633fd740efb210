"""Shared Pydantic base models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class GridBase(BaseModel):
    """Base model with shared config for all API schemas."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class CamelModel(GridBase):
    """Model persisted / exchanged with camelCase JSON keys.

    Serialize with ``model_dump(by_alias=True)``; both the snake_case field
    names and the camelCase aliases are accepted on input.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
    )


class ErrorDetail(BaseModel):
    detail: str
