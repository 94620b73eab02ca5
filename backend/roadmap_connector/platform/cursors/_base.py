"""Base cursor class for incremental sync tracking."""

from pydantic import BaseModel, ConfigDict


class BaseCursor(BaseModel):
    """Base cursor class for incremental sync tracking.

    Serialized with model_dump_json() and restored with model_validate_json(),
    so every cursor can be persisted as a JSON document.
    """

    model_config = ConfigDict(
        # Allow extra fields for forward compatibility
        extra="allow",
    )
