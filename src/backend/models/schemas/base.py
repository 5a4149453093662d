"""
Base API schemas shared across domains.

Chat Relay responses are bare payloads (no data/meta envelope); errors use
the ``{"error": {...}}`` shape from :mod:`models.error_models`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SuccessResponse(BaseModel):
    """
    Simple success response for operations without meaningful return data.

    Use for DELETE operations or actions that don't return entity data.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "message": "Resource deleted successfully",
            }
        }
    )

    success: bool = Field(
        default=True,
        description="Whether the operation succeeded",
        json_schema_extra={"example": True},
    )
    message: str | None = Field(
        default=None,
        description="Optional success message",
        json_schema_extra={"example": "Resource deleted successfully"},
    )
