"""
Sitemap resolution and before/after VRT phase endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.dependencies import get_vrt_service
from app.schemas.vrt import (
    AfterPhaseData,
    AfterPhaseRequest,
    AfterPhaseResponse,
    PhaseSummaryData,
    SessionData,
    SessionResponse,
    SitemapUrlsData,
    SitemapUrlsRequest,
    SitemapUrlsResponse,
)
from app.services.vrt_service import VRTService, session_payload, summary_payload

router = APIRouter(prefix="/vrt", tags=["vrt"])


@router.post("/sitemap-urls", response_model=SitemapUrlsResponse)
def resolve_sitemap_urls(
    payload: SitemapUrlsRequest,
    vrt: VRTService = Depends(get_vrt_service),
) -> SitemapUrlsResponse:
    resolved = vrt.resolve_sitemap_urls(
        site_url=payload.site_url,
        page_sitemap_url=payload.page_sitemap_url,
        post_sitemap_url=payload.post_sitemap_url,
    )
    return SitemapUrlsResponse(
        message="Sitemap URLs extracted successfully",
        data=SitemapUrlsData(
            pages=resolved.pages,
            posts=resolved.posts,
            total_pages=len(resolved.pages),
            total_posts=len(resolved.posts),
            total_urls=len(resolved.pages) + len(resolved.posts),
            fetched_at=resolved.fetched_at,
        ),
    )


@router.post("/after", response_model=AfterPhaseResponse)
def run_after_phase(
    payload: AfterPhaseRequest,
    vrt: VRTService = Depends(get_vrt_service),
) -> AfterPhaseResponse:
    session, summary = vrt.run_after_phase(
        payload.job_id,
        full_page=payload.full_page,
        timeout_ms=payload.timeout_ms,
    )
    return AfterPhaseResponse(
        message="Before After VRT test completed successfully",
        data=AfterPhaseData(
            session=SessionData(**session_payload(session)),
            summary=PhaseSummaryData(**summary_payload(summary)),
        ),
    )


@router.get("/{job_id}", response_model=SessionResponse)
def get_session_progress(
    job_id: UUID,
    vrt: VRTService = Depends(get_vrt_service),
) -> SessionResponse:
    session = vrt.get_progress(job_id)
    return SessionResponse(
        message=f"Session is {session.status}",
        data=SessionData(**session_payload(session)),
    )
