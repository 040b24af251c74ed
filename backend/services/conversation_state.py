"""Pure transitions over ConversationState.

Each function takes a state and returns a new one. Nothing here touches the
database or the model; the conversation service persists the final state of a
turn once everything else has succeeded.
"""

from typing import Iterable, Optional

from models.conversation import ConversationState
from models.passport import PassportField, UserExperience, utc_now
from utils.constant import IDEA_FIELD_KEY


class StateTransitionError(Exception):
    pass


class NoActiveFieldError(StateTransitionError):
    def __init__(self, operation: str):
        super().__init__(f"{operation} requires an active field but none is active")
        self.operation = operation


class FieldNotFoundError(StateTransitionError):
    def __init__(self, field_key: str):
        super().__init__(f"Field {field_key!r} does not exist in this session")
        self.field_key = field_key


def create_initial_state(session_id: str) -> ConversationState:
    return ConversationState(session_id=session_id)


def get_current_field(state: ConversationState) -> Optional[PassportField]:
    if state.current_field_key is None:
        return None
    return next((f for f in state.fields if f.field_key == state.current_field_key), None)


def _replace_field(state: ConversationState, field_key: str, **changes) -> tuple:
    found = False
    fields = []
    for f in state.fields:
        if f.field_key == field_key:
            f = f.model_copy(update={**changes, "updated_at": utc_now()})
            found = True
        fields.append(f)
    if not found:
        raise FieldNotFoundError(field_key)
    return tuple(fields)


def start_topic(state: ConversationState, field: PassportField) -> ConversationState:
    """Make ``field`` the active topic with its first question counted."""
    field = field.model_copy(update={"status": "active", "question_count": max(field.question_count, 1)})
    return state.model_copy(
        update={
            "current_field_key": field.field_key,
            "questions_asked_in_current_field": 1,
            "fields": state.fields + (field,),
        }
    )


def increment_question_count(state: ConversationState, question: Optional[str] = None) -> ConversationState:
    current = get_current_field(state)
    if current is None:
        raise NoActiveFieldError("increment_question_count")

    count = state.questions_asked_in_current_field + 1
    questions = current.questions + (question,) if question else current.questions
    fields = _replace_field(state, current.field_key, question_count=count, questions=questions)
    return state.model_copy(update={"questions_asked_in_current_field": count, "fields": fields})


def record_answer(state: ConversationState, answer: str) -> ConversationState:
    """Attach a user answer to the active field."""
    current = get_current_field(state)
    if current is None:
        raise NoActiveFieldError("record_answer")
    fields = _replace_field(state, current.field_key, answers=current.answers + (answer,))
    return state.model_copy(update={"fields": fields})


def complete_topic(state: ConversationState, field_key: str, content: str) -> ConversationState:
    fields = _replace_field(state, field_key, status="complete", content=content)
    completed = state.completed_fields
    if field_key not in completed:
        completed = completed + (field_key,)
    return state.model_copy(
        update={
            "fields": fields,
            "current_field_key": None,
            "questions_asked_in_current_field": 0,
            "completed_fields": completed,
        }
    )


def end_session(state: ConversationState) -> ConversationState:
    return state.model_copy(update={"is_complete": True})


def set_depth_reason(state: ConversationState, field_key: str, reason: str) -> ConversationState:
    return state.model_copy(update={"fields": _replace_field(state, field_key, depth_reason=reason)})


def restore_state(
    session_id: str,
    fields: Iterable[PassportField],
    user_experience: Optional[UserExperience] = None,
    is_complete: bool = False,
) -> ConversationState:
    """Rebuild the state of a session from its stored field rows."""
    topic_fields = tuple(
        sorted((f for f in fields if f.field_key != IDEA_FIELD_KEY), key=lambda f: f.order_index)
    )
    active = [f for f in topic_fields if f.status == "active"]
    if len(active) > 1:
        raise StateTransitionError(
            f"Session {session_id} has {len(active)} active fields: {[f.field_key for f in active]}"
        )

    current = active[0] if active else None
    return ConversationState(
        session_id=session_id,
        current_field_key=current.field_key if current else None,
        questions_asked_in_current_field=current.question_count if current else 0,
        completed_fields=tuple(f.field_key for f in topic_fields if f.status == "complete"),
        fields=topic_fields,
        is_complete=is_complete,
        user_experience=user_experience,
    )
