"""Shared pydantic base for request/response models.

The HTTP boundary speaks camelCase; Python code uses snake_case attributes.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for payloads exchanged in camelCase over the HTTP boundary."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


__all__ = ["CamelModel"]
