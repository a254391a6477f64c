# Makes 'models' a package and simplifies imports

from .base import BaseModel, metadata, utcnow
from .conversation import Conversation
from .message import Message
from .participant import ConversationParticipant
from .user import User

__all__ = [
    "BaseModel",
    "metadata",
    "utcnow",
    "User",
    "Conversation",
    "ConversationParticipant",
    "Message",
]
