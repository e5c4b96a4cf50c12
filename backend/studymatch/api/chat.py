"""REST API surface for conversations and messages."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from studymatch import container
from studymatch.domain.chat.resolver import ConversationResolver
from studymatch.domain.chat.schemas import (
	ConversationListItem,
	ConversationRef,
	DirectConversationRequest,
	GroupConversationRequest,
	MessageResponse,
	SendMessageRequest,
)
from studymatch.domain.chat.stream import MessageStream
from studymatch.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.post("/direct", response_model=ConversationRef)
async def open_direct(
	payload: DirectConversationRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	resolver: ConversationResolver = Depends(container.get_resolver),
) -> ConversationRef:
	conversation_id = await resolver.resolve_direct(auth_user.id, payload.peer_id)
	return ConversationRef(conversation_id=conversation_id)


@router.post("/group", response_model=ConversationRef, status_code=status.HTTP_201_CREATED)
async def create_group(
	payload: GroupConversationRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	resolver: ConversationResolver = Depends(container.get_resolver),
) -> ConversationRef:
	conversation_id = await resolver.create_group(auth_user.id, payload.member_ids, payload.name)
	return ConversationRef(conversation_id=conversation_id)


@router.get("", response_model=List[ConversationListItem])
async def list_conversations(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	resolver: ConversationResolver = Depends(container.get_resolver),
) -> List[ConversationListItem]:
	summaries = await resolver.list_conversations_for(auth_user.id)
	return [ConversationListItem.from_summary(summary) for summary in summaries]


@router.get("/{conversation_id}/messages", response_model=List[MessageResponse])
async def list_messages(
	conversation_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	stream: MessageStream = Depends(container.get_stream),
) -> List[MessageResponse]:
	await stream.conversation_for(conversation_id, auth_user.id)
	history = await stream.history(conversation_id)
	events = await stream.shared_events(history)
	return [MessageResponse.from_model(message, events) for message in history]


@router.post("/{conversation_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
	conversation_id: str,
	payload: SendMessageRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	stream: MessageStream = Depends(container.get_stream),
) -> MessageResponse:
	message = await stream.send(conversation_id, auth_user.id, payload.body, payload.event_ref)
	return MessageResponse.from_model(message, await stream.shared_events([message]))
