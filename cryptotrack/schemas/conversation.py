from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from .message import MessageResponse


class ConversationCreateRequest(BaseModel):
    participant_ids: list[UUID] | None = None


# Returned on creation; participants are fetched separately
class ConversationResponse(BaseModel):
    id: UUID
    created_at: datetime
    last_message_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ConversationSummaryResponse(ConversationResponse):
    participants: list[UUID]
    last_message: MessageResponse | None = None
    unread_count: int


class ConversationDetailResponse(ConversationSummaryResponse):
    pass
