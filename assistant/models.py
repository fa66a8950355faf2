import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, Field


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ChatState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"


class Turn(BaseModel):
    turn_id: str = Field(default_factory=_new_id)
    role: Literal["user", "assistant"]
    content: str = ""
    suggestions: Optional[List[str]] = None
    created_at: str = Field(default_factory=_now)

    model_config = {"frozen": True}


class Reference(BaseModel):
    reference: str
    version: str
    text: str
    topic: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def key(self) -> Tuple[str, str]:
        return self.reference, self.version


class ExtractedVerse(BaseModel):
    """Record shape requested from the extraction model."""

    reference: str
    text: str
    version: str
    topic: str


class RoundTripResult(BaseModel):
    accepted: bool
    turn_id: Optional[str] = None
    content: str = ""
    error: Optional[str] = None
