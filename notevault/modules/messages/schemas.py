"""
Messages Module - Pydantic Schemas
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class MessageCreate(BaseModel):
    receiver_id: uuid.UUID
    content: str = Field("", max_length=5000)


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    sender_id: uuid.UUID
    receiver_id: uuid.UUID
    content: str
    is_read: bool
    created_at: datetime


class ConversationResponse(BaseModel):
    id: str = Field(..., description="conv_<counterpart user id>")
    user_id: uuid.UUID
    user_name: str
    profile_picture_url: str | None = None
    last_message: str
    last_message_at: datetime
    unread_count: int = 0
