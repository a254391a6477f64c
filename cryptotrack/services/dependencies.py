from fastapi import Depends

from cryptotrack.repositories.conversation_repository import ConversationRepository
from cryptotrack.repositories.dependencies import get_conversation_repository

from .messaging_service import MessagingService


def get_messaging_service(
    conv_repo: ConversationRepository = Depends(get_conversation_repository),
) -> MessagingService:
    """Provides an instance of the MessagingService with its dependencies."""
    return MessagingService(conversation_repository=conv_repo)
