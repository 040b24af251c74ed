from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.passport import UserExperience


class CreateSessionSchema(BaseModel):
    session_id: Optional[str] = Field(default=None, min_length=1, max_length=64)


class SubmitIdeaSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    idea: str = Field(min_length=1, max_length=5000)


class ExperienceSchema(UserExperience):
    pass


class AnswerSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    answer: str = Field(min_length=1, max_length=5000)


class MemorySchema(BaseModel):
    memory: Dict[str, Any]


class DecideDepthSchema(BaseModel):
    field_key: str = Field(min_length=1)
    startup_knowledge: Optional[str] = None
    previous_quality: Optional[str] = None
    # Answers given under the previous field, used when previous_quality is not supplied
    previous_answers: Optional[List[str]] = None


class ExtractEntitiesSchema(BaseModel):
    answer: str = Field(min_length=1)
    field_key: str = ""
    idea_context: Optional[str] = None


class CheckContradictionsSchema(BaseModel):
    current_answer: str = ""
    current_field: str = ""
    memory_summary: str = ""
