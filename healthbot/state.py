from __future__ import annotations

from typing import Any, Dict, Tuple, TypedDict

from pydantic import BaseModel, ConfigDict, Field

PROFILE_FIELDS = ["name", "age", "children", "conditions", "location"]

SOURCE_INTAKE = "intake"
SOURCE_INTENT = "intent_detector"
SOURCE_COMPLETION = "completion"
SOURCE_FALLBACK = "static_fallback"


class Child(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    age: int


class ProfileContext(BaseModel):
    """Structured facts about a user, filled in one reply at a time.

    Instances are immutable; every update goes through ``merge_profile`` and
    produces a new value, so two sessions never share a mutable profile.
    """

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    age: int | None = None
    children: Tuple[Child, ...] | None = None
    conditions: str | None = None
    location: str | None = None

    def is_empty(self) -> bool:
        return not self.to_dict()

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class SessionState(BaseModel):
    user_context: ProfileContext = Field(default_factory=ProfileContext)
    profile_setup_step: int = 0
    profile_complete: bool = False


class AnswerAttempt(BaseModel):
    text: str
    source: str


class ChatResult(BaseModel):
    response_text: str
    user_context: ProfileContext
    source: str = ""


class ChatTurnState(TypedDict, total=False):
    message: str
    conversation_id: str
    session: SessionState
    branch: str
    response: str
    source: str
