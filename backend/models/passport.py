"""Passport document types: sessions, fields and the user's experience profile.

Every model here is frozen. Updates go through ``model_copy(update=...)`` so a
value handed to one step of a turn is never changed under another.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

FieldStatus = Literal["pending", "active", "complete"]
SessionStatus = Literal["intro", "in-progress", "completed"]


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class UserExperience(BaseModel):
    """Self-reported background collected before the conversation starts."""

    model_config = ConfigDict(frozen=True)

    role: Literal["student", "employed", "founder", "other"]
    business_experience: Literal["none", "1-2_years", "3-5_years", "5+_years"]
    startup_knowledge: Literal["beginner", "intermediate", "expert"]
    idea_stage: Literal["just_idea", "validating", "building", "launched"]


class PassportField(BaseModel):
    """One section of the idea passport."""

    model_config = ConfigDict(frozen=True)

    id: str
    session_id: str
    field_key: str
    name: str
    icon: str
    status: FieldStatus = "pending"
    content: str = ""
    order_index: int = 0
    question_count: int = 0
    questions: Tuple[str, ...] = ()
    answers: Tuple[str, ...] = ()
    depth_reason: Optional[str] = None
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PassportField":
        data = dict(row)
        data["questions"] = tuple(data.get("questions") or ())
        data["answers"] = tuple(data.get("answers") or ())
        data["content"] = data.get("content") or ""
        data["question_count"] = data.get("question_count") or 0
        for key in ("created_at", "updated_at"):
            if data.get(key) is None:
                data.pop(key, None)
        return cls.model_validate(data)

    def to_row(self) -> Dict[str, Any]:
        row = self.model_dump()
        row["questions"] = list(self.questions)
        row["answers"] = list(self.answers)
        return row


class PassportSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    idea_description: Optional[str] = None
    user_experience: Optional[UserExperience] = None
    status: SessionStatus = "intro"
    memory: Optional[Dict[str, Any]] = None
    completion: Optional[Dict[str, Any]] = None
    progress: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    completed_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PassportSession":
        return cls.model_validate(row)

    @property
    def is_complete(self) -> bool:
        return self.status == "completed"
