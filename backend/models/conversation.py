from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from models.passport import PassportField, UserExperience

Role = Literal["system", "user", "assistant"]


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class History(BaseModel):
    """Ordered, immutable conversation transcript."""

    model_config = ConfigDict(frozen=True)

    messages: Tuple[ChatMessage, ...] = ()

    @classmethod
    def from_rows(cls, rows: List[Dict]) -> "History":
        return cls(messages=tuple(ChatMessage(role=row["role"], content=row["content"]) for row in rows))

    def append(self, role: Role, content: str) -> "History":
        return History(messages=self.messages + (ChatMessage(role=role, content=content),))

    def tail(self, max_messages: int) -> "History":
        if len(self.messages) <= max_messages:
            return self
        return History(messages=self.messages[-max_messages:])

    def since(self, other: "History") -> Tuple[ChatMessage, ...]:
        """Messages appended after ``other``, which must be a prefix of this history."""
        return self.messages[len(other.messages):]

    def to_openai(self) -> List[Dict[str, str]]:
        return [{"role": m.role, "content": m.content} for m in self.messages]


class ConversationState(BaseModel):
    """Snapshot of where the conversation is. Replaced, never mutated."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    current_field_key: Optional[str] = None
    questions_asked_in_current_field: int = 0
    completed_fields: Tuple[str, ...] = ()
    fields: Tuple[PassportField, ...] = ()
    is_complete: bool = False
    user_experience: Optional[UserExperience] = None
