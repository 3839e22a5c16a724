"""
Health check endpoint.
"""

from fastapi import APIRouter, Request

from mhp.models.api.insights_response import HealthResponse, OpenAIStatus

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    """Always 200 while the app is running; reports whether OpenAI is usable."""
    settings = request.app.state.settings
    return HealthResponse(
        openai=OpenAIStatus(configured=settings.openai_configured(), model=settings.OPENAI_MODEL)
    )
