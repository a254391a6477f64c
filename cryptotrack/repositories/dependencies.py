from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cryptotrack.db import get_session_maker

from .conversation_repository import ConversationRepository


def get_conversation_repository(
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_session_maker),
) -> ConversationRepository:
    """Dependency provider for ConversationRepository."""
    return ConversationRepository(session_maker)
