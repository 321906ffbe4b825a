from __future__ import annotations

from pydantic import BaseModel, Field


class BulkError(BaseModel):
    device_id: str
    reason: str


class BulkResult(BaseModel):
    """Outcome of a bulk loan/return: every input is counted exactly once."""

    success_count: int = 0
    error_count: int = 0
    errors: list[BulkError] = Field(default_factory=list)


class StatusMessage(BaseModel):
    status: str
    message: str | None = None
