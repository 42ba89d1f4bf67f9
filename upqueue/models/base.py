"""Base classes for pydantic models."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class JsonModel(BaseModel):
    """Base model for internal/domain communication with camelCase aliases.

    - JSON output uses camelCase
    - Internal Python uses snake_case
    - Input accepts either form
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def model_dump(self, **kwargs) -> dict:
        """Override model_dump - snake_case for internal use."""
        kwargs.setdefault("mode", "json")
        return super().model_dump(**kwargs)

    def model_dump_json(self, **kwargs) -> str:
        """Override to ensure camelCase in JSON output."""
        kwargs.setdefault("by_alias", True)
        return super().model_dump_json(**kwargs)


class WireModel(BaseModel):
    """Base model for the browser-facing upload contract.

    Upload widgets post and read snake_case keys verbatim; no alias generator.
    """

    model_config = ConfigDict(extra="ignore")
