from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import exists, func, select, update

from cryptotrack.models import ConversationParticipant

from .base import BaseRepository


class ParticipantRepository(BaseRepository):
    async def get_participant(
        self, conversation_id: UUID, user_id: UUID
    ) -> ConversationParticipant | None:
        """Retrieves the membership row of a user in a conversation."""
        stmt = select(ConversationParticipant).where(
            ConversationParticipant.conversation_id == conversation_id,
            ConversationParticipant.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def is_participant(self, conversation_id: UUID, user_id: UUID) -> bool:
        stmt = select(
            exists().where(
                ConversationParticipant.conversation_id == conversation_id,
                ConversationParticipant.user_id == user_id,
            )
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def list_participant_ids(self, conversation_id: UUID) -> list[UUID]:
        participants = await self.list_participant_ids_for([conversation_id])
        return participants.get(conversation_id, [])

    async def list_participant_ids_for(
        self, conversation_ids: Iterable[UUID]
    ) -> dict[UUID, list[UUID]]:
        """Maps each conversation id to its participant user ids, in join order."""
        conversation_ids = list(conversation_ids)
        if not conversation_ids:
            return {}

        stmt = (
            select(ConversationParticipant.conversation_id, ConversationParticipant.user_id)
            .where(ConversationParticipant.conversation_id.in_(conversation_ids))
            .order_by(ConversationParticipant.created_at)
        )
        result = await self.session.execute(stmt)

        participants: dict[UUID, list[UUID]] = defaultdict(list)
        for conversation_id, user_id in result.all():
            participants[conversation_id].append(user_id)
        return dict(participants)

    async def add_participants(
        self, conversation_id: UUID, user_ids: Iterable[UUID], joined_at: datetime
    ) -> list[ConversationParticipant]:
        """Adds one membership row per user id, each starting with no unread messages."""
        new_participants = [
            ConversationParticipant(
                conversation_id=conversation_id,
                user_id=user_id,
                unread_count=0,
                created_at=joined_at,
            )
            for user_id in user_ids
        ]
        self.session.add_all(new_participants)
        await self.session.flush()
        return new_participants

    async def increment_unread_counts(
        self, conversation_id: UUID, exclude_user_id: UUID
    ) -> int:
        """Adds one unread message for every participant except ``exclude_user_id``.

        The increment is relative to the stored value so concurrent senders
        never overwrite each other's counts. Returns the number of rows updated.
        """
        stmt = (
            update(ConversationParticipant)
            .where(
                ConversationParticipant.conversation_id == conversation_id,
                ConversationParticipant.user_id != exclude_user_id,
            )
            .values(unread_count=ConversationParticipant.unread_count + 1)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def reset_unread_count(self, conversation_id: UUID, user_id: UUID) -> int:
        stmt = (
            update(ConversationParticipant)
            .where(
                ConversationParticipant.conversation_id == conversation_id,
                ConversationParticipant.user_id == user_id,
            )
            .values(unread_count=0)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def get_total_unread_count(self, user_id: UUID) -> int:
        stmt = select(
            func.coalesce(func.sum(ConversationParticipant.unread_count), 0)
        ).where(ConversationParticipant.user_id == user_id)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())
