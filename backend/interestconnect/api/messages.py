"""Message history and send endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from interestconnect.domain.chat.models import MinimalIdentity
from interestconnect.domain.chat.schemas import (
	ConversationsResponse,
	MessageHistoryResponse,
	SendMessageRequest,
	SendMessageResponse,
	StatusResponse,
	UnreadCountResponse,
)
from interestconnect.domain.chat.service import ChatService, get_chat_service
from interestconnect.infra.auth import get_current_user

router = APIRouter(prefix="/api/messages", tags=["messages"])


@router.get("/conversations", response_model=ConversationsResponse)
async def conversations_endpoint(
	user: MinimalIdentity = Depends(get_current_user),
	service: ChatService = Depends(get_chat_service),
) -> ConversationsResponse:
	return await service.conversations(user)


@router.get("/user/{user_id}", response_model=MessageHistoryResponse, response_model_exclude_none=True)
async def direct_history_endpoint(
	user_id: str,
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=50, ge=1, le=100),
	user: MinimalIdentity = Depends(get_current_user),
	service: ChatService = Depends(get_chat_service),
) -> MessageHistoryResponse:
	return await service.direct_history(user, user_id, page=page, limit=limit)


@router.get("/community/{community_id}", response_model=MessageHistoryResponse)
async def community_history_endpoint(
	community_id: str,
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=50, ge=1, le=100),
	user: MinimalIdentity = Depends(get_current_user),
	service: ChatService = Depends(get_chat_service),
) -> MessageHistoryResponse:
	return await service.community_history(user, community_id, page=page, limit=limit)


@router.post("/send", response_model=SendMessageResponse, status_code=status.HTTP_201_CREATED)
async def send_endpoint(
	payload: SendMessageRequest,
	user: MinimalIdentity = Depends(get_current_user),
	service: ChatService = Depends(get_chat_service),
) -> SendMessageResponse:
	return await service.send(user, payload)


@router.put("/read/{message_id}", response_model=StatusResponse)
async def mark_read_endpoint(
	message_id: str,
	user: MinimalIdentity = Depends(get_current_user),
	service: ChatService = Depends(get_chat_service),
) -> StatusResponse:
	await service.mark_read(user, message_id)
	return StatusResponse(message="Message marked as read")


@router.get("/unread/count", response_model=UnreadCountResponse)
async def unread_count_endpoint(
	user: MinimalIdentity = Depends(get_current_user),
	service: ChatService = Depends(get_chat_service),
) -> UnreadCountResponse:
	return UnreadCountResponse(count=await service.unread_count(user))
