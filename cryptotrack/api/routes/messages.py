import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status

from cryptotrack.api.common import BaseRouter
from cryptotrack.auth_config import current_active_user
from cryptotrack.models import User
from cryptotrack.schemas.conversation import (
    ConversationCreateRequest,
    ConversationDetailResponse,
    ConversationResponse,
    ConversationSummaryResponse,
)
from cryptotrack.schemas.message import (
    MarkReadRequest,
    MarkReadResponse,
    MessageCreateRequest,
    MessageResponse,
    UnreadTotalResponse,
)
from cryptotrack.services.dependencies import get_messaging_service
from cryptotrack.services.messaging_service import MessagingService

logger = logging.getLogger(__name__)
messages_router_instance = APIRouter(prefix="/messages")
router = BaseRouter(router=messages_router_instance, default_tags=["messages"])


@router.get(
    "/conversations", response_model=list[ConversationSummaryResponse]
)
async def list_conversations(
    user: User = Depends(current_active_user),
    messaging: MessagingService = Depends(get_messaging_service),
):
    """Lists the caller's conversations, most recently active first."""
    return await messaging.list_conversations(current_user=user)


@router.get("/unread", response_model=UnreadTotalResponse)
async def get_unread_total(
    user: User = Depends(current_active_user),
    messaging: MessagingService = Depends(get_messaging_service),
):
    return await messaging.get_unread_total(current_user=user)


@router.get(
    "/conversations/{conversation_id}", response_model=ConversationDetailResponse
)
async def get_conversation(
    conversation_id: UUID,
    user: User = Depends(current_active_user),
    messaging: MessagingService = Depends(get_messaging_service),
):
    return await messaging.get_conversation(
        conversation_id=conversation_id, current_user=user
    )


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=list[MessageResponse],
)
async def list_messages(
    conversation_id: UUID,
    user: User = Depends(current_active_user),
    messaging: MessagingService = Depends(get_messaging_service),
):
    """Lists messages oldest first; empty when the caller is not a participant."""
    return await messaging.list_messages(
        conversation_id=conversation_id, current_user=user
    )


@router.post(
    "", response_model=MessageResponse, status_code=status.HTTP_201_CREATED
)
async def send_message(
    request_data: MessageCreateRequest,
    user: User = Depends(current_active_user),
    messaging: MessagingService = Depends(get_messaging_service),
):
    return await messaging.send_message(
        current_user=user,
        conversation_id=request_data.conversation_id,
        content=request_data.content,
    )


@router.put("/read", response_model=MarkReadResponse)
async def mark_as_read(
    request_data: MarkReadRequest,
    user: User = Depends(current_active_user),
    messaging: MessagingService = Depends(get_messaging_service),
):
    return await messaging.mark_as_read(
        current_user=user, conversation_id=request_data.conversation_id
    )


@router.post(
    "/conversations",
    response_model=ConversationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_conversation(
    request_data: ConversationCreateRequest,
    user: User = Depends(current_active_user),
    messaging: MessagingService = Depends(get_messaging_service),
):
    logger.info(
        f"User {user.id} creating conversation with {len(request_data.participant_ids or [])} participants"
    )
    return await messaging.create_conversation(
        current_user=user, participant_ids=request_data.participant_ids
    )
