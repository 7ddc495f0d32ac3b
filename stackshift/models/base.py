"""
Base model shared by all stackshift records.

Records accept both snake_case field names and the camelCase aliases used by
the upstream planning step, and serialize to camelCase with `by_alias=True`.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class StackshiftModel(BaseModel):
    """Base class for externally visible records."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )
