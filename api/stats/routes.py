"""
Routes/endpoints for the Stats API
"""

from typing import Literal
from fastapi import APIRouter, Query
from fastapi.responses import PlainTextResponse

from api.stats.models import StatsPublic
from core.deps import ContentServiceDep

router = APIRouter(tags=["Stats Endpoints"])


@router.get("/stats", response_model=StatsPublic)
def get_stats(
    service: ContentServiceDep,
    output_format: Literal["text", "json"] = Query(
        "text", alias="format", description="Response format"
    ),
):
    """
    Number of stored files and short URLs, including expired rows that
    have not been swept yet.
    """
    stats = service.stats()
    if output_format == "json":
        return StatsPublic(files=stats.files, urls=stats.urls)
    return PlainTextResponse(
        f"Files stored: {stats.files}\nShort URLs stored: {stats.urls}\n"
    )
