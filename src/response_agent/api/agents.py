"""Agent endpoints: generate, review, rewrite and chat.

Each endpoint is a single Foundry agent call. Agent failures come back as
"Error: ..." text in a 200 response, matching how the UI renders them.
"""

import logging

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from response_agent.agents.foundry import AgentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agents", tags=["Agents"])


class TextBody(BaseModel):
    """Request body carrying one block of text."""

    text: str


class ChatBody(BaseModel):
    """Request body for a chat turn with optional background context."""

    message: str
    context: str | None = None


class TextResponse(BaseModel):
    """Agent output text (or an "Error: ..." message)."""

    text: str


def _agent_service(request: Request) -> AgentService:
    service = getattr(request.app.state, "agent_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Agent service not available.")
    return service


@router.post("/generate", response_model=TextResponse)
async def generate(request: Request, body: TextBody) -> TextResponse:
    """Generate an answer for a question."""
    text = await _agent_service(request).generate_response(body.text)
    return TextResponse(text=text)


@router.post("/review", response_model=TextResponse)
async def review(request: Request, body: TextBody) -> TextResponse:
    """Review a generated answer and point out improvements."""
    text = await _agent_service(request).review_response(body.text)
    return TextResponse(text=text)


@router.post("/rewrite", response_model=TextResponse)
async def rewrite(request: Request, body: TextBody) -> TextResponse:
    """Rewrite a generated answer."""
    text = await _agent_service(request).rewrite_response(body.text)
    return TextResponse(text=text)


@router.post("/chat", response_model=TextResponse)
async def chat(request: Request, body: ChatBody) -> TextResponse:
    """Send a chat message, optionally grounded on known background text."""
    text = await _agent_service(request).chat(body.message, body.context)
    return TextResponse(text=text)
