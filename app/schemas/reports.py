"""
Schemas for report synthesis and lookup.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field


class ReportCreateRequest(BaseModel):
    job_id: UUID | None = Field(
        default=None,
        validation_alias=AliasChoices("job_id", "automation_id", "automationId"),
    )


class ReportResponse(BaseModel):
    success: bool = True
    message: str
    data: dict[str, Any]
