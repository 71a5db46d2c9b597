"""
System / health routes.
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from sentinell.config import settings
from sentinell.services.session_service import session_store

router = APIRouter(tags=["System"])


@router.get("/health")
async def health():
    return {
        "status": "healthy",
        "version": settings.app_version,
        "gemini_configured": bool(settings.gemini_api_key),
        "sessions": len(session_store),
    }


@router.get("/robots.txt", response_class=PlainTextResponse)
def robots():
    return "User-agent: *\nDisallow: /"
