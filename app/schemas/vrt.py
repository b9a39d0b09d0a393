"""
Schemas for sitemap resolution and VRT phase endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field


class SitemapUrlsRequest(BaseModel):
    site_url: str = ""
    page_sitemap_url: str | None = None
    post_sitemap_url: str | None = None


class SitemapUrlsData(BaseModel):
    pages: list[str] = Field(default_factory=list)
    posts: list[str] = Field(default_factory=list)
    total_pages: int
    total_posts: int
    total_urls: int
    fetched_at: datetime


class SitemapUrlsResponse(BaseModel):
    success: bool = True
    message: str
    data: SitemapUrlsData


class AfterPhaseRequest(BaseModel):
    job_id: UUID = Field(validation_alias=AliasChoices("job_id", "automation_id"))
    full_page: bool | None = None
    timeout_ms: int | None = Field(default=None, ge=1000)


class PhaseFailure(BaseModel):
    url: str
    error: str | None = None


class PhaseSummaryData(BaseModel):
    phase: str
    attempted: int
    succeeded: int
    failed: int
    skipped: int
    failures: list[PhaseFailure] = Field(default_factory=list)


class SessionData(BaseModel):
    session_id: UUID
    job_id: UUID
    site_url: str
    status: str
    pages: int
    posts: int
    before_captured: int
    after_captured: int
    before_completed_at: datetime | None = None
    after_completed_at: datetime | None = None


class AfterPhaseData(BaseModel):
    session: SessionData
    summary: PhaseSummaryData


class AfterPhaseResponse(BaseModel):
    success: bool = True
    message: str
    data: AfterPhaseData


class SessionResponse(BaseModel):
    success: bool = True
    message: str
    data: SessionData
