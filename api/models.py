from typing import List, Optional

from pydantic import BaseModel

from assistant.models import Reference, Turn


class ChatMessageRequest(BaseModel):
    prompt: str


class ChatMessageResponse(BaseModel):
    turn_id: Optional[str] = None
    content: str = ""
    error: Optional[str] = None


class ChatConversationResponse(BaseModel):
    session_id: Optional[str] = None
    state: str
    loading: bool
    error: Optional[str] = None
    pending_enrichment: int = 0
    turns: List[Turn]


class ReferenceListResponse(BaseModel):
    topics: List[str]
    total: int
    items: List[Reference]


class StartersResponse(BaseModel):
    show: bool
    items: List[str]


class LogResetResponse(BaseModel):
    reset: bool
