"""
System routes: process liveness and crawler policy.

Collaborator configuration is reported separately by GET /detect/health.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["System"])


@router.get("/health")
async def health():
    return {
        "status": "success",
        "message": "Server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/robots.txt", response_class=PlainTextResponse)
def robots():
    return "User-agent: *\nDisallow: /"
