from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.types import Uuid

from .base import BaseModel


class ConversationParticipant(BaseModel):
    __tablename__ = "conversation_participants"

    # id, created_at inherited from BaseModel
    conversation_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    unread_count = Column(Integer, nullable=False, default=0, server_default="0")

    conversation = relationship("Conversation", back_populates="participants")
    user = relationship("User", back_populates="participations", foreign_keys=[user_id])

    __table_args__ = (
        UniqueConstraint(
            "conversation_id", "user_id", name="uq_participant_conversation_user"
        ),
        CheckConstraint("unread_count >= 0", name="ck_participant_unread_non_negative"),
    )
