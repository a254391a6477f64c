from sqlalchemy import Column
from sqlalchemy.orm import relationship

from .base import BaseModel, UTCDateTime, utcnow


class Conversation(BaseModel):
    __tablename__ = "conversations"

    # id, created_at are inherited from BaseModel
    last_message_at = Column(UTCDateTime(), nullable=False, default=utcnow)

    # A conversation owns its participants and messages
    participants = relationship(
        "ConversationParticipant",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
