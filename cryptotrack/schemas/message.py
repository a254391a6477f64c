from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class MessageResponse(BaseModel):
    id: int
    conversation_id: UUID
    sender_id: UUID
    content: str
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Fields are optional so that missing values reach the service and are
# reported as bad input rather than as a schema error.
class MessageCreateRequest(BaseModel):
    conversation_id: UUID | None = None
    content: str | None = None


class MarkReadRequest(BaseModel):
    conversation_id: UUID | None = None


class MarkReadResponse(BaseModel):
    success: bool


class UnreadTotalResponse(BaseModel):
    unread_count: int
