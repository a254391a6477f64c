import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Select, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from cryptotrack.models import Conversation, ConversationParticipant, Message, utcnow

from .base import TransactionalRepository
from .message_repository import MessageRepository
from .participant_repository import ParticipantRepository

logger = logging.getLogger(__name__)


@dataclass
class ConversationDetails:
    """A conversation as seen by one of its participants."""

    conversation: Conversation
    participant_ids: list[UUID] = field(default_factory=list)
    last_message: Message | None = None
    unread_count: int = 0


@dataclass(frozen=True)
class ConversationPatch:
    """Optional new values for the mutable columns of a conversation."""

    last_message_at: datetime | None = None

    # Field name -> column. UPDATE statements are built from this mapping only.
    COLUMNS = {"last_message_at": Conversation.last_message_at}

    def values(self) -> dict[Any, Any]:
        return {
            column: getattr(self, name)
            for name, column in self.COLUMNS.items()
            if getattr(self, name) is not None
        }


def normalize_participant_ids(creator_id: UUID, participant_ids: Iterable[UUID]) -> list[UUID]:
    """Returns the creator followed by the other participants, each exactly once."""
    normalized = [creator_id]
    for participant_id in participant_ids:
        if participant_id not in normalized:
            normalized.append(participant_id)
    return normalized


class ConversationRepository(TransactionalRepository):
    """Owns every read and write of conversations, participants and messages.

    Multi-step operations run in a single transaction. Reads fail soft: a
    storage error is logged and an empty result returned. Writes roll back on
    a storage error and return ``None``/``False``.
    """

    def _summary_statement(self, user_id: UUID) -> Select:
        """Conversation, the user's unread count and the latest message, in one row.

        A single statement reads all three from the same snapshot, so the
        last message always agrees with last_message_at.
        """
        last_message = aliased(Message)
        latest_message_id = (
            select(Message.id)
            .where(Message.conversation_id == Conversation.id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(1)
            .correlate(Conversation)
            .scalar_subquery()
        )
        return (
            select(Conversation, ConversationParticipant.unread_count, last_message)
            .join(
                ConversationParticipant,
                ConversationParticipant.conversation_id == Conversation.id,
            )
            .outerjoin(last_message, last_message.id == latest_message_id)
            .where(ConversationParticipant.user_id == user_id)
        )

    async def get_user_conversations(self, user_id: UUID) -> list[ConversationDetails]:
        """Lists the user's conversations, most recently active first."""
        try:
            async with self.transaction() as session:
                stmt = self._summary_statement(user_id).order_by(
                    Conversation.last_message_at.desc(),
                    Conversation.created_at.desc(),
                )
                rows = (await session.execute(stmt)).all()

                # Participant sets are fixed when the conversation is created
                participant_ids = await ParticipantRepository(
                    session
                ).list_participant_ids_for(conversation.id for conversation, _, _ in rows)

                return [
                    ConversationDetails(
                        conversation=conversation,
                        participant_ids=participant_ids.get(conversation.id, []),
                        last_message=last_message,
                        unread_count=unread_count,
                    )
                    for conversation, unread_count, last_message in rows
                ]
        except SQLAlchemyError as e:
            logger.error(
                f"Database error listing conversations for user {user_id}: {e}",
                exc_info=True,
            )
            return []

    async def get_conversation_by_id(
        self, conversation_id: UUID, user_id: UUID
    ) -> ConversationDetails | None:
        """Retrieves a conversation for one of its participants.

        Returns None both when the conversation does not exist and when the
        user is not a participant.
        """
        try:
            async with self.transaction() as session:
                stmt = self._summary_statement(user_id).where(
                    Conversation.id == conversation_id
                )
                row = (await session.execute(stmt)).first()
                if row is None:
                    logger.debug(
                        f"User {user_id} has no access to conversation {conversation_id}"
                    )
                    return None

                conversation, unread_count, last_message = row
                return ConversationDetails(
                    conversation=conversation,
                    participant_ids=await ParticipantRepository(
                        session
                    ).list_participant_ids(conversation_id),
                    last_message=last_message,
                    unread_count=unread_count,
                )
        except SQLAlchemyError as e:
            logger.error(
                f"Database error getting conversation {conversation_id}: {e}",
                exc_info=True,
            )
            return None

    async def get_messages(self, conversation_id: UUID, user_id: UUID) -> list[Message]:
        """Lists a conversation's messages oldest first; empty for non-participants."""
        try:
            async with self.transaction() as session:
                if not await ParticipantRepository(session).is_participant(
                    conversation_id, user_id
                ):
                    logger.debug(
                        f"User {user_id} has no access to messages of {conversation_id}"
                    )
                    return []
                return await MessageRepository(session).get_messages_by_conversation(
                    conversation_id
                )
        except SQLAlchemyError as e:
            logger.error(
                f"Database error getting messages for conversation {conversation_id}: {e}",
                exc_info=True,
            )
            return []

    async def create_message(
        self, sender_id: UUID, conversation_id: UUID, content: str
    ) -> Message | None:
        """Appends a message and bumps the unread count of every other participant.

        The insert, the conversation's last_message_at and the unread counters
        change together or not at all. Returns None if the sender is not a
        participant or the transaction failed.
        """
        if content is None:
            raise ValueError("Message content is required.")

        try:
            async with self.transaction() as session:
                participants = ParticipantRepository(session)
                if not await participants.is_participant(conversation_id, sender_id):
                    logger.info(
                        f"Rejected message from {sender_id}: not a participant of {conversation_id}"
                    )
                    return None

                now = utcnow()
                message = await MessageRepository(session).create_message(
                    conversation_id=conversation_id,
                    sender_id=sender_id,
                    content=content,
                    created_at=now,
                )
                await self._update_conversation(
                    session, conversation_id, ConversationPatch(last_message_at=now)
                )
                await participants.increment_unread_counts(
                    conversation_id, exclude_user_id=sender_id
                )
                return message
        except SQLAlchemyError as e:
            logger.error(
                f"Database error creating message in conversation {conversation_id}: {e}",
                exc_info=True,
            )
            return None

    async def mark_as_read(self, user_id: UUID, conversation_id: UUID) -> bool:
        """Marks messages from other participants read and clears the user's unread count."""
        try:
            async with self.transaction() as session:
                participants = ParticipantRepository(session)
                if not await participants.is_participant(conversation_id, user_id):
                    return False

                await MessageRepository(session).mark_received_as_read(
                    conversation_id, reader_id=user_id
                )
                await participants.reset_unread_count(conversation_id, user_id)
                return True
        except SQLAlchemyError as e:
            logger.error(
                f"Database error marking conversation {conversation_id} read for {user_id}: {e}",
                exc_info=True,
            )
            return False

    async def create_conversation(
        self, creator_id: UUID, participant_ids: Iterable[UUID]
    ) -> Conversation | None:
        """Creates a conversation and its participant rows in one transaction.

        The creator is always a participant; duplicate ids are ignored.
        """
        member_ids = normalize_participant_ids(creator_id, participant_ids)

        try:
            async with self.transaction() as session:
                now = utcnow()
                conversation = Conversation(created_at=now, last_message_at=now)
                session.add(conversation)
                await session.flush()

                await ParticipantRepository(session).add_participants(
                    conversation.id, member_ids, joined_at=now
                )
                logger.info(
                    f"Conversation {conversation.id} created by {creator_id} "
                    f"with {len(member_ids)} participants"
                )
                return conversation
        except SQLAlchemyError as e:
            logger.error(
                f"Database error creating conversation for {creator_id}: {e}",
                exc_info=True,
            )
            return None

    async def get_unread_count(self, conversation_id: UUID, user_id: UUID) -> int | None:
        """Returns the user's unread count, or None if they are not a participant."""
        try:
            async with self.transaction() as session:
                participant = await ParticipantRepository(session).get_participant(
                    conversation_id, user_id
                )
                return participant.unread_count if participant else None
        except SQLAlchemyError as e:
            logger.error(f"Database error reading unread count: {e}", exc_info=True)
            return None

    async def get_total_unread_count(self, user_id: UUID) -> int:
        try:
            async with self.transaction() as session:
                return await ParticipantRepository(session).get_total_unread_count(user_id)
        except SQLAlchemyError as e:
            logger.error(
                f"Database error reading total unread count for {user_id}: {e}",
                exc_info=True,
            )
            return 0

    async def _update_conversation(
        self, session: AsyncSession, conversation_id: UUID, patch: ConversationPatch
    ) -> None:
        values = patch.values()
        if not values:
            return
        stmt = update(Conversation).where(Conversation.id == conversation_id).values(values)
        await session.execute(stmt)
