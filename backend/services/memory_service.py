"""Session memory: mentioned entities, per-field summaries and contradictions.

The helpers at module level are pure functions over ``SessionMemory``. The
``MemoryTracker`` adds the two model-backed enrichment calls, both of which
degrade to an empty result instead of failing the turn.
"""

import logging
import uuid
from typing import Iterable, List, Optional

from pydantic import ValidationError

from exceptions import LLMServiceError
from models.memory import (
    ENTITY_CATEGORIES,
    Contradiction,
    ContradictionCheckResult,
    ExtractedEntities,
    MentionedEntities,
    SessionMemory,
)
from models.passport import utc_now
from utils.constant import (
    CLARIFICATION_FALLBACK,
    CONTRADICTION_CHECK_PROMPT,
    ENTITY_EXTRACTION_PROMPT,
    ENTITY_LABELS,
)

logger = logging.getLogger(__name__)

FIELD_SUMMARY_LIMIT = 200
DEFAULT_ENTITY_CAP = 10


def create_memory() -> SessionMemory:
    return SessionMemory()


def merge_entity_list(existing: Iterable[str], new: Iterable[str], cap: int = DEFAULT_ENTITY_CAP) -> tuple:
    """Existing entries first, then unseen new ones; overflow drops the oldest."""
    merged: List[str] = []
    seen = set()
    for item in list(existing) + list(new):
        value = item.strip() if isinstance(item, str) else ""
        if not value or value in seen:
            continue
        seen.add(value)
        merged.append(value)
    if len(merged) > cap:
        merged = merged[-cap:]
    return tuple(merged)


def merge_entities(
    existing: MentionedEntities,
    new: ExtractedEntities,
    cap: int = DEFAULT_ENTITY_CAP,
) -> MentionedEntities:
    return MentionedEntities(
        **{
            category: merge_entity_list(getattr(existing, category), getattr(new, category), cap)
            for category in ENTITY_CATEGORIES
        }
    )


def apply_extraction(memory: SessionMemory, extracted: ExtractedEntities, cap: int = DEFAULT_ENTITY_CAP) -> SessionMemory:
    return memory.model_copy(
        update={
            "mentioned_entities": merge_entities(memory.mentioned_entities, extracted, cap),
            "updated_at": utc_now(),
        }
    )


def running_summary(answers: Iterable[str], limit: int = FIELD_SUMMARY_LIMIT) -> str:
    """Answers of an unfinished topic, trimmed from the front so the latest ones survive."""
    return " ".join(answers)[-limit:]


def update_field_summary(memory: SessionMemory, field_key: str, summary: str) -> SessionMemory:
    summaries = dict(memory.field_summaries)
    summaries[field_key] = summary[:FIELD_SUMMARY_LIMIT]
    return memory.model_copy(update={"field_summaries": summaries, "updated_at": utc_now()})


def add_contradiction(memory: SessionMemory, contradiction: Contradiction) -> SessionMemory:
    return memory.model_copy(
        update={"contradictions": memory.contradictions + (contradiction,), "updated_at": utc_now()}
    )


def pending_contradiction(memory: SessionMemory) -> Optional[Contradiction]:
    unresolved = memory.unresolved_contradictions()
    return unresolved[-1] if unresolved else None


def resolve_contradiction(memory: SessionMemory, contradiction_id: str, clarification: str) -> SessionMemory:
    contradictions = tuple(
        c.model_copy(update={"resolved": True, "clarification": clarification}) if c.id == contradiction_id else c
        for c in memory.contradictions
    )
    return memory.model_copy(update={"contradictions": contradictions, "updated_at": utc_now()})


def format_memory_summary(memory: SessionMemory) -> str:
    """Compact text summary of memory, fed back into prompts. Empty when nothing is known."""
    lines = []
    entities = memory.mentioned_entities
    for category in ENTITY_CATEGORIES:
        values = getattr(entities, category)
        if values:
            lines.append(f"{ENTITY_LABELS[category]}: {', '.join(values)}")

    for field_key, summary in memory.field_summaries.items():
        lines.append(f"{field_key}: {summary}")

    unresolved = len(memory.unresolved_contradictions())
    if unresolved:
        lines.append(f"⚠️ გაურკვეველი წინააღმდეგობები: {unresolved}")

    return "\n".join(lines)


def load_memory(raw: Optional[dict]) -> SessionMemory:
    """Parse a stored memory blob, starting fresh if it is missing or malformed."""
    if not raw:
        return create_memory()
    try:
        return SessionMemory.model_validate(raw)
    except ValidationError as exc:
        logger.warning(f"⚠️ Stored memory is malformed, starting fresh: {exc}")
        return create_memory()


class MemoryTracker:
    """Model-backed entity extraction and contradiction checks."""

    def __init__(self, llm, entity_cap: int = DEFAULT_ENTITY_CAP):
        self.llm = llm
        self.entity_cap = entity_cap

    async def extract_entities(self, answer: str, field_key: str, idea_context: Optional[str] = None) -> ExtractedEntities:
        prompt = ENTITY_EXTRACTION_PROMPT.format(
            idea_context=idea_context or "არ არის მითითებული",
            field_key=field_key,
            answer=answer,
        )
        try:
            data = await self.llm.generate_json(prompt)
            extracted = ExtractedEntities.model_validate(data)
        except (LLMServiceError, ValidationError) as exc:
            logger.warning(f"⚠️ Entity extraction failed for {field_key}, continuing without it: {exc}")
            return ExtractedEntities()

        logger.info(f"🧠 Extracted entities for {field_key}: {extracted.model_dump()}")
        return extracted

    async def check_contradiction(self, memory_summary: str, answer: str, field_key: str) -> ContradictionCheckResult:
        if not memory_summary.strip() or not answer.strip():
            return ContradictionCheckResult(has_contradiction=False)

        prompt = CONTRADICTION_CHECK_PROMPT.format(
            memory_summary=memory_summary,
            field_key=field_key,
            answer=answer,
        )
        try:
            data = await self.llm.generate_json(prompt)
            result = ContradictionCheckResult.model_validate(data)
        except (LLMServiceError, ValidationError) as exc:
            logger.warning(f"⚠️ Contradiction check failed for {field_key}, assuming none: {exc}")
            return ContradictionCheckResult(has_contradiction=False)

        if result.has_contradiction:
            logger.info(f"🔀 Contradiction detected in {field_key}: {result.contradiction_details}")
        return result

    def build_contradiction(self, result: ContradictionCheckResult, field_key: str, answer: str) -> Contradiction:
        details = result.contradiction_details
        return Contradiction(
            id=str(uuid.uuid4()),
            field1=(details.field1 if details and details.field1 else "unknown"),
            field2=(details.field2 if details and details.field2 else field_key),
            statement1=(details.statement1 if details else ""),
            statement2=(details.statement2 if details and details.statement2 else answer),
            explanation=(details.explanation if details else ""),
            clarification_question=result.clarification_question or CLARIFICATION_FALLBACK,
        )
