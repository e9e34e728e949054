"""Base Pydantic schemas and helpers for careerkb models."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class CareerKBModel(BaseModel):
    """Base Pydantic model for all schemas with common configuration."""

    model_config = ConfigDict(
        # Build records straight from SQLAlchemy rows
        from_attributes=True,
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )


class LLMOutputModel(CareerKBModel):
    """Base for schemas the language model fills in.

    Models routinely emit ``null`` for empty lists and numbers where strings
    are expected; both are normalized before field validation so that only a
    genuinely wrong shape becomes a parse failure.
    """

    model_config = ConfigDict(
        from_attributes=True,
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
        populate_by_name=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


def utc_now() -> datetime:
    """Get current UTC datetime.

    Returns:
        Current datetime in UTC timezone
    """
    return datetime.now(timezone.utc)
