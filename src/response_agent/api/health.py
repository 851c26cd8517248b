"""Health check endpoint with Foundry and voice configuration status."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Return service health status including Foundry and voice availability."""
    agent_service = getattr(request.app.state, "agent_service", None)
    foundry_status = (
        "configured"
        if agent_service is not None and agent_service.is_configured
        else "not_configured"
    )

    voice_service = getattr(request.app.state, "voice_service", None)
    voice_status = (
        "connected"
        if voice_service is not None and voice_service.is_initialized
        else "not_configured"
    )

    overall = "ok" if foundry_status == "configured" else "degraded"

    return {
        "status": overall,
        "foundry": foundry_status,
        "voice": voice_status,
    }
