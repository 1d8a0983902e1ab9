from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from schemas.base import CamelModel


class SupportMessageRequest(BaseModel):
    message: str = Field(..., example="My download link expired before I could use it")

class SupportReplyRequest(BaseModel):
    reply: str = Field(..., example="Your quota has been restored")

class ConversationEntry(CamelModel):
    sender: str = Field(..., example="user", description="Either 'user' or 'admin'")
    message: str
    created_at: Optional[datetime] = None

class SupportThreadResponse(CamelModel):
    id: Optional[int] = None
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    status: Optional[str] = None
    conversation: list[ConversationEntry] = []
