from dataclasses import asdict, dataclass
from typing import Optional, Sequence

from models.passport import PassportField
from utils.constant import (
    BASE_QUESTION_COUNTS,
    EXPERIENCE_ADJUSTMENTS,
    FIELD_COMPLEXITY_MAP,
    MAX_DEPTH,
    MIN_DEPTH,
    QUALITY_ADJUSTMENTS,
)

DETAILED_ANSWER_LENGTH = 200
ADEQUATE_ANSWER_LENGTH = 50


@dataclass(frozen=True)
class DepthDecision:
    question_count: int
    reason: str
    complexity: str
    quality_assessment: str

    def to_dict(self):
        return asdict(self)


def get_field_complexity(field_key: str) -> str:
    return FIELD_COMPLEXITY_MAP.get(field_key, "medium")


def assess_answer_quality(answers: Sequence[str]) -> str:
    """Classify answers by average length: detailed, adequate or vague."""
    if not answers:
        return "vague"
    average = sum(len(a) for a in answers) / len(answers)
    if average > DETAILED_ANSWER_LENGTH:
        return "detailed"
    if average >= ADEQUATE_ANSWER_LENGTH:
        return "adequate"
    return "vague"


def assess_previous_field_quality(fields: Sequence[PassportField], current_index: int) -> str:
    """Quality of the field before ``current_index``; the first topic has none."""
    if current_index <= 0 or not fields:
        return "first_field"
    previous = fields[min(current_index, len(fields)) - 1]
    return assess_answer_quality(previous.answers)


def compute_depth(
    field_key: str,
    startup_knowledge: Optional[str] = None,
    previous_quality: Optional[str] = None,
) -> DepthDecision:
    """Recommended number of questions for a topic, clamped to [MIN_DEPTH, MAX_DEPTH].

    Advisory only: the count is shown to the model, which still decides when
    a topic is done.
    """
    complexity = get_field_complexity(field_key)
    base = BASE_QUESTION_COUNTS[complexity]
    knowledge = startup_knowledge or "intermediate"
    quality = previous_quality or "first_field"

    experience_delta = EXPERIENCE_ADJUSTMENTS.get(knowledge, 0)
    quality_delta = QUALITY_ADJUSTMENTS.get(quality, 0)
    count = max(MIN_DEPTH, min(MAX_DEPTH, base + experience_delta + quality_delta))

    reason = (
        f"{complexity} complexity (base {base}), {knowledge} founder ({experience_delta:+d}), "
        f"previous answers {quality} ({quality_delta:+d}) -> {count} questions"
    )
    return DepthDecision(
        question_count=count,
        reason=reason,
        complexity=complexity,
        quality_assessment=quality,
    )
