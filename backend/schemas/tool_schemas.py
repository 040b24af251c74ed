"""Argument models for the four mentor tools, one per tool name."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from utils.constant import TOPIC_FIELD_KEYS


class _ToolArgs(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)


class TopicDescriptor(_ToolArgs):
    field_key: str
    field_name: str = Field(min_length=1)
    field_icon: str = Field(min_length=1)
    question: str = Field(min_length=1)

    @field_validator("field_key")
    @classmethod
    def known_field_key(cls, value: str) -> str:
        if value not in TOPIC_FIELD_KEYS:
            raise ValueError(f"unknown field_key {value!r}")
        return value


class StartTopicArgs(TopicDescriptor):
    pass


class AskFollowupArgs(_ToolArgs):
    question: str = Field(min_length=1)
    reason: Optional[str] = None


class CompleteTopicArgs(_ToolArgs):
    content: str = Field(min_length=1)
    next_topic: Optional[TopicDescriptor] = None


class EndSessionArgs(_ToolArgs):
    message: str = Field(min_length=1)
    assessment: str = ""
    score: int = Field(ge=1, le=10)
