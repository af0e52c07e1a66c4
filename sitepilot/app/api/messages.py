"""
Chat Messages API.

One resource per user scope (taken from the X-User-Id header):

    GET    /messages   Stored conversation
    POST   /messages   Send a message, run a turn, return the reply
    DELETE /messages   Reset the conversation, return what was stored
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from sitepilot.agent.conversation import ChatService
from sitepilot.app.dependencies import get_chat_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])

DEFAULT_SCOPE = "anonymous"


class MessageBody(BaseModel):
    """Incoming chat message."""

    model_config = ConfigDict(extra="forbid")

    role: Literal["user", "model", "system"] = Field(..., description="Message sender role")
    parts: list[dict[str, Any]] = Field(..., description="Message parts")
    type: Literal["regular", "error"] = Field("regular", description="Type of the message")


def get_scope(x_user_id: str | None = Header(default=None)) -> str:
    """User scope for the request."""
    return x_user_id or DEFAULT_SCOPE


@router.get("")
async def get_messages(
    scope: str = Depends(get_scope),
    service: ChatService = Depends(get_chat_service),
) -> list[dict[str, Any]]:
    return await service.get_messages(scope)


@router.post("")
async def send_message(
    body: MessageBody,
    scope: str = Depends(get_scope),
    service: ChatService = Depends(get_chat_service),
) -> dict[str, Any]:
    """Run one chat turn and return the outward message."""
    logger.info(f"[api:messages] POST for {scope} ({len(body.parts)} parts)")
    try:
        return await service.send_message(scope, body.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.delete("")
async def reset_messages(
    scope: str = Depends(get_scope),
    service: ChatService = Depends(get_chat_service),
) -> list[dict[str, Any]]:
    return await service.reset_messages(scope)
