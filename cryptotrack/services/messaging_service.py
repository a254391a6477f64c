import logging
from uuid import UUID

from cryptotrack.models import User
from cryptotrack.repositories.conversation_repository import (
    ConversationDetails,
    ConversationRepository,
)
from cryptotrack.schemas.conversation import (
    ConversationDetailResponse,
    ConversationResponse,
    ConversationSummaryResponse,
)
from cryptotrack.schemas.message import (
    MarkReadResponse,
    MessageResponse,
    UnreadTotalResponse,
)

from .exceptions import ConversationNotFoundError, DatabaseError, InvalidInputError

logger = logging.getLogger(__name__)

NOT_A_PARTICIPANT_MESSAGE = "Conversation not found or you are not a participant."


def _to_summary(details: ConversationDetails) -> dict:
    conversation = details.conversation
    return {
        "id": conversation.id,
        "created_at": conversation.created_at,
        "last_message_at": conversation.last_message_at,
        "participants": details.participant_ids,
        "last_message": (
            MessageResponse.model_validate(details.last_message)
            if details.last_message is not None
            else None
        ),
        "unread_count": details.unread_count,
    }


class MessagingService:
    """Entry point for messaging used by the API layer.

    The acting user always comes from the authenticated request, never from
    the request body. Input is validated here; the repository assumes it
    already has been.
    """

    def __init__(self, conversation_repository: ConversationRepository):
        self.conv_repo = conversation_repository

    async def list_conversations(
        self, current_user: User
    ) -> list[ConversationSummaryResponse]:
        conversations = await self.conv_repo.get_user_conversations(current_user.id)
        return [
            ConversationSummaryResponse(**_to_summary(details)) for details in conversations
        ]

    async def get_conversation(
        self, conversation_id: UUID, current_user: User
    ) -> ConversationDetailResponse:
        details = await self.conv_repo.get_conversation_by_id(
            conversation_id, current_user.id
        )
        if details is None:
            raise ConversationNotFoundError()
        return ConversationDetailResponse(**_to_summary(details))

    async def list_messages(
        self, conversation_id: UUID, current_user: User
    ) -> list[MessageResponse]:
        messages = await self.conv_repo.get_messages(conversation_id, current_user.id)
        return [MessageResponse.model_validate(message) for message in messages]

    async def send_message(
        self, current_user: User, conversation_id: UUID | None, content: str | None
    ) -> MessageResponse:
        if conversation_id is None or not content or not content.strip():
            raise InvalidInputError("Conversation ID and content are required.")

        message = await self.conv_repo.create_message(
            current_user.id, conversation_id, content
        )
        if message is None:
            raise ConversationNotFoundError(NOT_A_PARTICIPANT_MESSAGE)

        logger.info(f"Message {message.id} sent to conversation {conversation_id}")
        return MessageResponse.model_validate(message)

    async def mark_as_read(
        self, current_user: User, conversation_id: UUID | None
    ) -> MarkReadResponse:
        if conversation_id is None:
            raise InvalidInputError("Conversation ID is required.")

        if not await self.conv_repo.mark_as_read(current_user.id, conversation_id):
            raise ConversationNotFoundError(NOT_A_PARTICIPANT_MESSAGE)
        return MarkReadResponse(success=True)

    async def create_conversation(
        self, current_user: User, participant_ids: list[UUID] | None
    ) -> ConversationResponse:
        # A list holding only the caller is accepted and yields a self-conversation.
        if not participant_ids:
            raise InvalidInputError("At least one participant ID is required.")

        conversation = await self.conv_repo.create_conversation(
            current_user.id, participant_ids
        )
        if conversation is None:
            raise DatabaseError("Failed to create conversation.")
        return ConversationResponse.model_validate(conversation)

    async def get_unread_total(self, current_user: User) -> UnreadTotalResponse:
        total = await self.conv_repo.get_total_unread_count(current_user.id)
        return UnreadTotalResponse(unread_count=total)
