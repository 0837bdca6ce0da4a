"""
Shared request model base for the JSON API
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Request body accepting camelCase keys (``drawId``) or snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
