"""Pydantic models for error handling.

Data structures for error reports and details.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """Strict schema for error details."""

    model_config = ConfigDict(extra="allow")

    path: str | None = None
    name: str | None = None
    note_id: int | None = None
    card_ord: int | None = None
    model_id: str | None = None
    side: str | None = None
    chunk: int | None = None
    status: int | None = None
    service: str | None = None
    operation: str | None = None


class ErrorReport(BaseModel):
    """Unified error report schema."""

    error: str = Field(..., description="Error code (SNAKE_CASE)")
    message: str = Field(..., description="Human-readable error description")
    details: dict[str, Any] = Field(default_factory=dict)
    deck_id: str = Field(default="", description="Deck being imported when raised")
