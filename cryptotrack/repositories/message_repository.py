from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update

from cryptotrack.models import Message

from .base import BaseRepository


class MessageRepository(BaseRepository):
    async def create_message(
        self,
        conversation_id: UUID,
        sender_id: UUID,
        content: str,
        created_at: datetime,
    ) -> Message:
        """Creates and flushes a new unread message."""
        new_message = Message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            is_read=False,
            created_at=created_at,
        )
        self.session.add(new_message)
        await self.session.flush()
        return new_message

    async def get_messages_by_conversation(self, conversation_id: UUID) -> list[Message]:
        """Retrieves all messages for a given conversation, oldest first."""
        stmt = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def mark_received_as_read(self, conversation_id: UUID, reader_id: UUID) -> int:
        """Flags every message in the conversation not sent by ``reader_id`` as read.

        The flag lives on the message itself, so it is shared by all
        participants rather than tracked per reader.
        """
        stmt = (
            update(Message)
            .where(
                Message.conversation_id == conversation_id,
                Message.sender_id != reader_id,
                Message.is_read.is_(False),
            )
            .values(is_read=True)
        )
        result = await self.session.execute(stmt)
        return result.rowcount
