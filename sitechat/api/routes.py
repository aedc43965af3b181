"""
API routes: create, list, delete, chat and the widget script.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from ..errors import BotNotFoundError, InvalidURLError, NoContentError
from ..generation.prompts import APOLOGY_MESSAGES
from .deps import Container, get_container
from .models import (
    BotSummary,
    ChatRequest,
    ChatResponse,
    CreateRequest,
    CreateResponse,
    DeleteResponse,
    DeletionDetails,
    HealthResponse,
    ListResponse,
)
from .widget import embed_code, render_widget

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])
public_router = APIRouter(tags=["public"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _origin(request: Request) -> str:
    return str(request.base_url).rstrip("/")


@router.post("/create", response_model=CreateResponse)
async def create_bot(
    request: Request,
    body: CreateRequest,
    container: Container = Depends(get_container),
) -> CreateResponse | JSONResponse:
    """Crawl a website and build a chatbot for it."""
    if not body.url:
        return _error(400, "URL is required")
    try:
        result = await container.bots.create(body.url, body.max_pages, body.max_depth)
    except (InvalidURLError, NoContentError) as e:
        return _error(400, str(e))
    except Exception as e:
        logger.exception("Create chatbot error")
        return _error(500, f"Failed to create chatbot: {e}")
    bot = result.bot
    return CreateResponse(
        bot_id=bot.id,
        title=bot.title,
        embed_code=embed_code(_origin(request), bot.id),
        pages_processed=result.pages_processed,
        chunks_processed=result.chunks_processed,
    )


@router.get("/list", response_model=ListResponse)
async def list_bots(container: Container = Depends(get_container)) -> ListResponse | JSONResponse:
    """All chatbots, newest first."""
    try:
        bots = await container.bots.list()
    except Exception:
        logger.exception("List chatbots error")
        return _error(500, "Failed to list chatbots")
    return ListResponse(
        chatbots=[
            BotSummary(
                id=b.id,
                title=b.title,
                url=b.url,
                created_at=b.created_at,
                total_pages=b.total_pages,
            )
            for b in bots
        ]
    )


@router.delete("/delete/{bot_id}", response_model=DeleteResponse)
async def delete_bot(
    bot_id: str,
    container: Container = Depends(get_container),
) -> DeleteResponse | JSONResponse:
    """Delete a chatbot with its vectors, chunks and conversations."""
    try:
        report = await container.bots.delete(bot_id)
    except BotNotFoundError:
        return _error(404, "Bot not found")
    except Exception as e:
        logger.exception("Delete bot error")
        return _error(500, f"Failed to delete bot: {e}")
    return DeleteResponse(
        details=DeletionDetails(
            vectors_deleted=report.vectors_deleted,
            chunks_deleted=report.chunks_deleted,
            conversations_deleted=report.conversations_deleted,
        )
    )


@router.post("/chat", response_model=ChatResponse)
async def chat(
    body: ChatRequest,
    container: Container = Depends(get_container),
) -> ChatResponse | JSONResponse:
    """Answer a message with the bot's site content; failures become an apology."""
    if not body.id or not body.message:
        return _error(400, "Bot ID and message are required")
    try:
        bot = await container.bots.get(body.id)
    except BotNotFoundError:
        return _error(404, "Bot not found")
    except Exception:
        logger.exception("Chat error loading bot %s", body.id)
        return ChatResponse(response=APOLOGY_MESSAGES["en"], links=[])

    try:
        resp = await container.agent.answer(bot, body.message, body.session_id or "default")
    except Exception:
        logger.exception("Chat error for bot %s", body.id)
        return ChatResponse(response=APOLOGY_MESSAGES["en"], links=[])
    return ChatResponse(response=resp.answer, links=resp.links)


@public_router.get("/widget.js")
async def widget(request: Request) -> Response:
    """Embeddable chat widget."""
    return Response(
        content=render_widget(_origin(request)),
        media_type="application/javascript",
        headers={"Cache-Control": "public, max-age=3600"},
    )


@public_router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check."""
    return HealthResponse(timestamp=datetime.now(timezone.utc).isoformat())
