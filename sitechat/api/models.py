"""
Request and response models for the sitechat API.

JSON field names are camelCase on the wire (``botId``, ``maxPages``); Python
attributes stay snake_case.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateRequest(ApiModel):
    """Request body for POST /api/create."""

    url: Optional[str] = Field(None, description="Website to crawl")
    max_pages: Optional[int] = None
    max_depth: Optional[int] = None


class CreateResponse(ApiModel):
    """Response for POST /api/create."""

    success: bool = True
    bot_id: str
    title: str
    embed_code: str
    pages_processed: int
    chunks_processed: int


class BotSummary(ApiModel):
    """One entry of GET /api/list."""

    id: str
    title: str
    url: str
    created_at: int
    total_pages: int = 0


class ListResponse(ApiModel):
    """Response for GET /api/list."""

    chatbots: List[BotSummary] = Field(default_factory=list)


class DeletionDetails(ApiModel):
    vectors_deleted: int = 0
    chunks_deleted: int = 0
    conversations_deleted: int = 0


class DeleteResponse(ApiModel):
    """Response for DELETE /api/delete/{bot_id}."""

    success: bool = True
    message: str = "Bot and all associated data deleted successfully"
    details: DeletionDetails


class ChatRequest(ApiModel):
    """Request body for POST /api/chat."""

    id: Optional[str] = Field(None, description="Bot id")
    message: Optional[str] = Field(None, description="User message")
    session_id: str = Field("default", description="Widget session for conversation history")


class ChatResponse(ApiModel):
    """Response for POST /api/chat."""

    response: str
    links: List[str] = Field(default_factory=list)


class HealthResponse(ApiModel):
    """Response for GET /health."""

    status: str = "healthy"
    timestamp: str
