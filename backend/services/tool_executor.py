"""Apply model-issued tool calls to the conversation state.

Decoding is two-step: the tool name picks an argument model, then the
arguments are validated against it. Anything that does not decode, or that
would break the one-active-field rule, comes back as a ``ToolError`` and the
state is left exactly as it was.
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Type, Union

from pydantic import BaseModel, ValidationError

from models.conversation import ConversationState
from models.passport import PassportField
from schemas.tool_schemas import (
    AskFollowupArgs,
    CompleteTopicArgs,
    EndSessionArgs,
    StartTopicArgs,
    TopicDescriptor,
)
from services import conversation_state as transitions
from utils.tool_definitions import ASK_FOLLOWUP, COMPLETE_TOPIC, END_SESSION, START_TOPIC

logger = logging.getLogger(__name__)

ARGUMENT_MODELS: Dict[str, Type[BaseModel]] = {
    START_TOPIC: StartTopicArgs,
    ASK_FOLLOWUP: AskFollowupArgs,
    COMPLETE_TOPIC: CompleteTopicArgs,
    END_SESSION: EndSessionArgs,
}

UNKNOWN_TOOL = "unknown_tool"
INVALID_ARGUMENTS = "invalid_arguments"
NO_ACTIVE_FIELD = "no_active_field"
FIELD_ALREADY_COMPLETED = "field_already_completed"
TOPIC_ALREADY_ACTIVE = "topic_already_active"
FIELD_NOT_FOUND = "field_not_found"
POLICY_VIOLATION = "policy_violation"


@dataclass(frozen=True)
class ToolInvocation:
    name: str
    arguments: Union[str, Dict[str, Any], None] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class ToolError:
    kind: str
    tool: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "tool": self.tool, "message": self.message}


@dataclass(frozen=True)
class SessionEnd:
    message: str
    score: int
    assessment: str
    fields_completed: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "score": self.score,
            "assessment": self.assessment,
            "fields_completed": list(self.fields_completed),
        }


@dataclass(frozen=True)
class CompletedField:
    field_key: str
    content: str


@dataclass
class ExecutionResult:
    state: ConversationState
    question: Optional[str] = None
    new_field: Optional[PassportField] = None
    completed: Optional[CompletedField] = None
    session_end: Optional[SessionEnd] = None
    new_fields: List[PassportField] = field(default_factory=list)
    completed_fields: List[CompletedField] = field(default_factory=list)
    errors: List[ToolError] = field(default_factory=list)
    tools_applied: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def decode_invocation(invocation: ToolInvocation) -> Union[BaseModel, ToolError]:
    model = ARGUMENT_MODELS.get(invocation.name)
    if model is None:
        return ToolError(UNKNOWN_TOOL, invocation.name, f"Unknown tool {invocation.name!r}")

    raw = invocation.arguments
    if raw is None or raw == "":
        raw = {}
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            return ToolError(INVALID_ARGUMENTS, invocation.name, f"Arguments are not valid JSON: {exc}")
    if not isinstance(raw, dict):
        return ToolError(INVALID_ARGUMENTS, invocation.name, "Arguments must be a JSON object")

    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in exc.errors()
        )
        return ToolError(INVALID_ARGUMENTS, invocation.name, details)


def _new_field(state: ConversationState, topic: TopicDescriptor) -> PassportField:
    return PassportField(
        id=str(uuid.uuid4()),
        session_id=state.session_id,
        field_key=topic.field_key,
        name=topic.field_name,
        icon=topic.field_icon,
        status="active",
        order_index=len(state.fields) + 1,  # 0 belongs to the idea field
        question_count=1,
        questions=(topic.question,),
    )


def _check_can_start(state: ConversationState, tool: str, field_key: str) -> Optional[ToolError]:
    if state.current_field_key is not None:
        return ToolError(
            TOPIC_ALREADY_ACTIVE,
            tool,
            f"Cannot start {field_key!r} while {state.current_field_key!r} is still active",
        )
    if field_key in state.completed_fields:
        return ToolError(FIELD_ALREADY_COMPLETED, tool, f"Field {field_key!r} is already completed")
    if any(f.field_key == field_key for f in state.fields):
        return ToolError(FIELD_ALREADY_COMPLETED, tool, f"Field {field_key!r} already exists")
    return None


def execute_tool(state: ConversationState, invocation: ToolInvocation) -> ExecutionResult:
    """Apply a single invocation. On error the returned state is ``state`` itself."""
    decoded = decode_invocation(invocation)
    if isinstance(decoded, ToolError):
        return ExecutionResult(state=state, errors=[decoded])

    name = invocation.name

    if isinstance(decoded, StartTopicArgs):
        error = _check_can_start(state, name, decoded.field_key)
        if error:
            return ExecutionResult(state=state, errors=[error])
        new_field = _new_field(state, decoded)
        return ExecutionResult(
            state=transitions.start_topic(state, new_field),
            question=decoded.question,
            new_field=new_field,
            new_fields=[new_field],
            tools_applied=[name],
        )

    if isinstance(decoded, AskFollowupArgs):
        try:
            new_state = transitions.increment_question_count(state, decoded.question)
        except transitions.NoActiveFieldError as exc:
            return ExecutionResult(state=state, errors=[ToolError(NO_ACTIVE_FIELD, name, str(exc))])
        if decoded.reason:
            logger.debug(f"❓ Follow-up on {state.current_field_key}: {decoded.reason}")
        return ExecutionResult(state=new_state, question=decoded.question, tools_applied=[name])

    if isinstance(decoded, CompleteTopicArgs):
        field_key = state.current_field_key
        if field_key is None:
            return ExecutionResult(
                state=state,
                errors=[ToolError(NO_ACTIVE_FIELD, name, "complete_topic requires an active field")],
            )
        try:
            new_state = transitions.complete_topic(state, field_key, decoded.content)
        except transitions.FieldNotFoundError as exc:
            return ExecutionResult(state=state, errors=[ToolError(FIELD_NOT_FOUND, name, str(exc))])

        completed = CompletedField(field_key=field_key, content=decoded.content)
        result = ExecutionResult(
            state=new_state,
            completed=completed,
            completed_fields=[completed],
            tools_applied=[name],
        )
        if decoded.next_topic is not None:
            error = _check_can_start(new_state, name, decoded.next_topic.field_key)
            if error:
                # The completion stands, only the follow-on topic is refused
                result.errors.append(error)
                return result
            next_field = _new_field(new_state, decoded.next_topic)
            result.state = transitions.start_topic(new_state, next_field)
            result.question = decoded.next_topic.question
            result.new_field = next_field
            result.new_fields.append(next_field)
        return result

    # EndSessionArgs
    new_state = transitions.end_session(state)
    session_end = SessionEnd(
        message=decoded.message,
        score=decoded.score,
        assessment=decoded.assessment,
        fields_completed=new_state.completed_fields,
    )
    return ExecutionResult(state=new_state, session_end=session_end, tools_applied=[name])


def execute_tools(state: ConversationState, invocations: List[ToolInvocation]) -> ExecutionResult:
    """Apply invocations in order, each against the state left by the previous one."""
    combined = ExecutionResult(state=state)
    for invocation in invocations:
        step = execute_tool(combined.state, invocation)
        combined.state = step.state
        if step.question is not None:
            combined.question = step.question
        if step.new_field is not None:
            combined.new_field = step.new_field
        if step.completed is not None:
            combined.completed = step.completed
        if step.session_end is not None:
            combined.session_end = step.session_end
        combined.new_fields.extend(step.new_fields)
        combined.completed_fields.extend(step.completed_fields)
        combined.errors.extend(step.errors)
        combined.tools_applied.extend(step.tools_applied)

        for error in step.errors:
            logger.warning(f"⚠️ Tool {error.tool} rejected ({error.kind}): {error.message}")

    logger.info(
        f"🛠️ Executed {len(invocations)} tool call(s) for session {state.session_id}: "
        f"applied={combined.tools_applied} errors={len(combined.errors)}"
    )
    return combined
