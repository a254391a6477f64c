import uuid

from fastapi_users.db import SQLAlchemyBaseUserTable
from sqlalchemy.orm import relationship

from .base import BaseModel


# SQLAlchemyBaseUserTable supplies email, hashed_password, is_active,
# is_superuser and is_verified; id and created_at come from BaseModel.
class User(SQLAlchemyBaseUserTable[uuid.UUID], BaseModel):
    __tablename__ = "users"

    participations = relationship(
        "ConversationParticipant",
        back_populates="user",
        foreign_keys="ConversationParticipant.user_id",
    )
    sent_messages = relationship(
        "Message",
        back_populates="sender",
        foreign_keys="Message.sender_id",
    )
