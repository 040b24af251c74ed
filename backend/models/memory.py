from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.passport import utc_now

ENTITY_CATEGORIES = ("audiences", "competitors", "features", "numbers", "locations")


class MentionedEntities(BaseModel):
    """Short strings the user has mentioned, bucketed by category."""

    model_config = ConfigDict(frozen=True)

    audiences: Tuple[str, ...] = ()
    competitors: Tuple[str, ...] = ()
    features: Tuple[str, ...] = ()
    numbers: Tuple[str, ...] = ()
    locations: Tuple[str, ...] = ()

    def is_empty(self) -> bool:
        return not any(getattr(self, category) for category in ENTITY_CATEGORIES)


class ExtractedEntities(BaseModel):
    """Raw extraction result. Lists may be missing or oversized."""

    audiences: List[str] = Field(default_factory=list)
    competitors: List[str] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)
    numbers: List[str] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list)

    @field_validator(*ENTITY_CATEGORIES, mode="before")
    @classmethod
    def scalars_to_strings(cls, value: Any) -> Any:
        # models emit bare numbers like 500; nested objects are dropped
        if not isinstance(value, list):
            return value
        return [str(item) for item in value if isinstance(item, (str, int, float)) and not isinstance(item, bool)]


class Contradiction(BaseModel):
    """An inconsistency between statements made under two different fields."""

    model_config = ConfigDict(frozen=True)

    id: str
    field1: str
    field2: str
    statement1: str
    statement2: str
    explanation: str = ""
    clarification_question: str = ""
    clarification: Optional[str] = None
    resolved: bool = False
    created_at: str = Field(default_factory=utc_now)


class SessionMemory(BaseModel):
    model_config = ConfigDict(frozen=True)

    mentioned_entities: MentionedEntities = Field(default_factory=MentionedEntities)
    field_summaries: Dict[str, str] = Field(default_factory=dict)
    contradictions: Tuple[Contradiction, ...] = ()
    user_preferences: Dict[str, str] = Field(default_factory=dict)
    key_metrics: Dict[str, str] = Field(default_factory=dict)
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)

    def unresolved_contradictions(self) -> List[Contradiction]:
        return [c for c in self.contradictions if not c.resolved]


class ContradictionDetails(BaseModel):
    field1: str = ""
    field2: Optional[str] = None
    statement1: str = ""
    statement2: str = ""
    explanation: str = ""


class ContradictionCheckResult(BaseModel):
    has_contradiction: bool = False
    contradiction_details: Optional[ContradictionDetails] = None
    clarification_question: Optional[str] = None
