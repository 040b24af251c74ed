"""Turn orchestration: one user action in, one mentor reply out.

Every turn loads the session, rebuilds the conversation state from stored
fields, computes the whole outcome in memory and only then writes fields,
session row and messages. A failure anywhere before the writes leaves the
store untouched.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from config import Settings
from exceptions import InvalidTurnError, SessionCompletedError
from models.conversation import ConversationState, History
from models.memory import ContradictionCheckResult, SessionMemory
from models.passport import PassportField, PassportSession, UserExperience, utc_now
from services import conversation_state as transitions
from services import memory_service
from services.chat_service import ChatService
from services.depth_service import (
    DepthDecision,
    assess_answer_quality,
    assess_previous_field_quality,
    compute_depth,
)
from services.llm_service import LLMService
from services.memory_service import MemoryTracker
from services.session_service import SessionService
from services.tool_executor import (
    POLICY_VIOLATION,
    ExecutionResult,
    ToolError,
    ToolInvocation,
    execute_tools,
)
from utils.constant import (
    BUSINESS_EXPERIENCE_LABELS,
    CONTINUE_FALLBACK_MESSAGE,
    FIELD_CATALOG,
    FIELD_DESCRIPTIONS,
    FINISH_OR_NEXT_TOPIC_NUDGE,
    IDEA_FIELD_KEY,
    IDEA_STAGE_LABELS,
    INITIAL_GREETING,
    MENTOR_SYSTEM_PROMPT,
    NEXT_TOPIC_NUDGE,
    ROLE_LABELS,
    STARTUP_KNOWLEDGE_LABELS,
    TOPIC_FIELD_KEYS,
)
from utils.progress import calculate_progress
from utils.tool_definitions import COMPLETE_TOPIC, END_SESSION

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    reply: str
    state: ConversationState
    fields: List[PassportField]
    session_end: Optional[Dict[str, Any]] = None
    tool_errors: List[ToolError] = field(default_factory=list)
    depth: Optional[DepthDecision] = None
    progress: Dict[str, int] = field(default_factory=dict)
    clarification: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reply": self.reply,
            "fields": [f.to_row() for f in self.fields],
            "completed_fields": list(self.state.completed_fields),
            "current_field_key": self.state.current_field_key,
            "questions_asked_in_current_field": self.state.questions_asked_in_current_field,
            "is_complete": self.state.is_complete,
            "session_end": self.session_end,
            "tool_errors": [e.to_dict() for e in self.tool_errors],
            "depth": self.depth.to_dict() if self.depth else None,
            "progress": self.progress,
            "clarification": self.clarification,
        }


def build_opening_message(idea: str, experience: Optional[UserExperience]) -> str:
    message = f"მომხმარებლის ბიზნეს იდეა: {idea}"
    if experience is not None:
        message += (
            "\n\nმომხმარებლის გამოცდილება:\n"
            f"- როლი: {ROLE_LABELS[experience.role]}\n"
            f"- ბიზნეს გამოცდილება: {BUSINESS_EXPERIENCE_LABELS[experience.business_experience]}\n"
            f"- სტარტაპ ცოდნა: {STARTUP_KNOWLEDGE_LABELS[experience.startup_knowledge]}\n"
            f"- იდეის ეტაპი: {IDEA_STAGE_LABELS[experience.idea_stage]}"
        )
    return message


def _field_catalog_text() -> str:
    lines = []
    for key in TOPIC_FIELD_KEYS:
        name, icon = FIELD_CATALOG[key]
        lines.append(f"- {key}: {name} {icon} - {FIELD_DESCRIPTIONS.get(key, '')}")
    return "\n".join(lines)


def active_depth(state: ConversationState) -> Optional[DepthDecision]:
    current = transitions.get_current_field(state)
    if current is None:
        return None
    knowledge = state.user_experience.startup_knowledge if state.user_experience else None
    index = state.fields.index(current)
    return compute_depth(current.field_key, knowledge, assess_previous_field_quality(state.fields, index))


def build_system_prompt(state: ConversationState, memory: SessionMemory, min_fields: int) -> str:
    parts = [MENTOR_SYSTEM_PROMPT.format(min_fields=min_fields, field_catalog=_field_catalog_text())]

    used = [f.field_key for f in state.fields]
    if used:
        parts.append(f"ALREADY COMPLETED FIELDS (DO NOT USE THESE AGAIN): {', '.join(used)}")

    summary = memory_service.format_memory_summary(memory)
    if summary:
        parts.append(f"MEMORY (what the user has told you so far):\n{summary}")

    current = transitions.get_current_field(state)
    depth = active_depth(state)
    if current is not None and depth is not None:
        parts.append(
            f"ACTIVE TOPIC: {current.field_key} ({current.name}). "
            f"Questions asked so far: {state.questions_asked_in_current_field}. "
            f"RECOMMENDED DEPTH: about {depth.question_count} questions ({depth.reason})."
        )
    else:
        parts.append("NO ACTIVE TOPIC: call start_topic (or end_session) before asking anything.")

    completed = len(state.completed_fields)
    if completed >= min_fields:
        parts.append(f"PROGRESS: {completed} fields completed. You may call end_session when ready.")
    else:
        parts.append(
            f"PROGRESS: {completed}/{min_fields} fields completed. "
            f"Do NOT call end_session before {min_fields} fields are completed."
        )
    return "\n\n".join(parts)


class ConversationService:
    def __init__(
        self,
        settings: Settings,
        llm: LLMService,
        sessions: SessionService,
        chats: ChatService,
        memory_tracker: MemoryTracker,
    ):
        self.settings = settings
        self.llm = llm
        self.sessions = sessions
        self.chats = chats
        self.memory_tracker = memory_tracker

    # ---------- session lifecycle ----------

    async def create_session(self, session_id: Optional[str] = None) -> Dict[str, Any]:
        session = await self.sessions.create_session(session_id)
        greeting = History().append("assistant", INITIAL_GREETING)
        await self.chats.save_chat_messages(session["id"], greeting.messages)
        return {"session": session, "greeting": INITIAL_GREETING}

    async def _load_session(self, session_id: str) -> PassportSession:
        return PassportSession.from_row(await self.sessions.get_session(session_id))

    async def get_passport(self, session_id: str) -> Dict[str, Any]:
        session = await self._load_session(session_id)
        fields = await self.sessions.list_fields(session_id)
        completed = [f.field_key for f in fields if f.status == "complete" and f.field_key != IDEA_FIELD_KEY]
        return {
            "session": session.model_dump(),
            "fields": [f.to_row() for f in fields],
            "progress": calculate_progress(completed, self.settings.min_completed_fields, session.is_complete),
        }

    async def submit_idea(self, session_id: str, idea: str) -> Dict[str, Any]:
        session = await self._load_session(session_id)
        if session.is_complete:
            raise SessionCompletedError(f"Session {session_id} is already completed")

        fields = await self.sessions.list_fields(session_id)
        if any(f.field_key != IDEA_FIELD_KEY for f in fields):
            raise InvalidTurnError("The conversation has already started; the idea can no longer be changed")

        name, icon = FIELD_CATALOG[IDEA_FIELD_KEY]
        existing = next((f for f in fields if f.field_key == IDEA_FIELD_KEY), None)
        idea_field = PassportField(
            id=existing.id if existing else str(uuid.uuid4()),
            session_id=session_id,
            field_key=IDEA_FIELD_KEY,
            name=name,
            icon=icon,
            status="complete",
            content=idea,
            order_index=0,
        )
        await self.sessions.upsert_fields([idea_field])
        updated = await self.sessions.patch_session(session_id, {"idea_description": idea})
        logger.info(f"💡 Idea saved for session {session_id}")
        return {"session": updated, "field": idea_field.to_row()}

    async def save_experience(self, session_id: str, experience: UserExperience) -> Dict[str, Any]:
        session = await self._load_session(session_id)
        updates: Dict[str, Any] = {"user_experience": experience.model_dump()}
        if not session.is_complete:
            updates["status"] = "in-progress"
        return await self.sessions.patch_session(session_id, updates)

    async def get_experience(self, session_id: str) -> Optional[Dict[str, Any]]:
        session = await self._load_session(session_id)
        return session.user_experience.model_dump() if session.user_experience else None

    async def get_history(self, session_id: str) -> List[Dict[str, Any]]:
        await self.sessions.get_session(session_id)
        return await self.chats.fetch_chat_history(session_id)

    async def get_memory(self, session_id: str) -> Dict[str, Any]:
        session = await self._load_session(session_id)
        return memory_service.load_memory(session.memory).model_dump(mode="json")

    async def save_memory(self, session_id: str, raw: Dict[str, Any]) -> Dict[str, Any]:
        try:
            memory = SessionMemory.model_validate(raw)
        except ValidationError as exc:
            raise InvalidTurnError(f"Invalid memory blob: {exc.error_count()} error(s)") from exc
        await self.sessions.save_memory(session_id, memory.model_dump(mode="json"))
        return memory.model_dump(mode="json")

    # ---------- conversation turns ----------

    async def begin(self, session_id: str) -> TurnResult:
        """Send the idea and experience to the mentor and return its first question."""
        session = await self._load_session(session_id)
        if session.is_complete:
            raise SessionCompletedError(f"Session {session_id} is already completed")
        if not session.idea_description:
            raise InvalidTurnError("Submit an idea before starting the conversation")

        stored_fields = await self.sessions.list_fields(session_id)
        state = transitions.restore_state(session_id, stored_fields, session.user_experience)
        loaded_history = await self.chats.load_history(session_id)
        if state.fields or any(m.role == "user" for m in loaded_history.messages):
            raise InvalidTurnError("The conversation has already started")

        memory = memory_service.load_memory(session.memory)
        history = loaded_history.append("user", build_opening_message(session.idea_description, session.user_experience))
        return await self._complete_turn(session, stored_fields, state, memory, loaded_history, history)

    async def submit_answer(self, session_id: str, answer: str) -> TurnResult:
        session = await self._load_session(session_id)
        if session.is_complete:
            raise SessionCompletedError(f"Session {session_id} is already completed")
        if not session.idea_description:
            raise InvalidTurnError("Submit an idea before answering questions")

        stored_fields = await self.sessions.list_fields(session_id)
        state = transitions.restore_state(session_id, stored_fields, session.user_experience)
        memory = memory_service.load_memory(session.memory)
        loaded_history = await self.chats.load_history(session_id)
        history = loaded_history.append("user", answer)

        current_key = state.current_field_key
        if current_key is not None:
            pending = memory_service.pending_contradiction(memory)
            if pending is not None:
                memory = memory_service.resolve_contradiction(memory, pending.id, answer)
                logger.info(f"✅ Contradiction {pending.id} clarified in session {session_id}")
            else:
                memory, check = await self._enrich_memory(memory, answer, current_key, session.idea_description)
                if check.has_contradiction:
                    return await self._ask_clarification(session, stored_fields, state, memory, check, loaded_history, history, answer)

            state = transitions.record_answer(state, answer)
            current = transitions.get_current_field(state)
            summary = memory_service.running_summary(current.answers)
            memory = memory_service.update_field_summary(memory, current_key, summary)

        return await self._complete_turn(session, stored_fields, state, memory, loaded_history, history)

    async def _enrich_memory(
        self, memory: SessionMemory, answer: str, field_key: str, idea: Optional[str]
    ) -> Tuple[SessionMemory, ContradictionCheckResult]:
        summary = memory_service.format_memory_summary(memory)
        extracted = await self.memory_tracker.extract_entities(answer, field_key, idea)
        check = await self.memory_tracker.check_contradiction(summary, answer, field_key)
        memory = memory_service.apply_extraction(memory, extracted, self.settings.entity_cap)
        return memory, check

    async def _ask_clarification(
        self,
        session: PassportSession,
        stored_fields: List[PassportField],
        state: ConversationState,
        memory: SessionMemory,
        check: ContradictionCheckResult,
        loaded_history: History,
        history: History,
        answer: str,
    ) -> TurnResult:
        contradiction = self.memory_tracker.build_contradiction(check, state.current_field_key, answer)
        memory = memory_service.add_contradiction(memory, contradiction)
        reply = contradiction.clarification_question
        history = history.append("assistant", reply)

        await self.sessions.save_memory(session.id, memory.model_dump(mode="json"))
        await self.chats.save_chat_messages(session.id, history.since(loaded_history))
        logger.info(f"🤔 Asked for clarification in session {session.id} ({contradiction.field1} vs {contradiction.field2})")

        return TurnResult(
            reply=reply,
            state=state,
            fields=self._document_fields(stored_fields, state),
            depth=active_depth(state),
            progress=calculate_progress(state.completed_fields, self.settings.min_completed_fields),
            clarification=True,
        )

    def _apply_calls(self, state: ConversationState, calls: List[ToolInvocation]) -> ExecutionResult:
        result = execute_tools(state, calls)
        min_fields = self.settings.min_completed_fields
        if result.session_end is not None and len(result.state.completed_fields) < min_fields:
            logger.warning(
                f"🚫 end_session refused for {state.session_id}: "
                f"{len(result.state.completed_fields)}/{min_fields} fields completed"
            )
            result = execute_tools(state, [c for c in calls if c.name != END_SESSION])
            result.errors.append(
                ToolError(
                    POLICY_VIOLATION,
                    END_SESSION,
                    f"end_session needs at least {min_fields} completed fields",
                )
            )
        return result

    @staticmethod
    def _needs_next_topic(result: ExecutionResult) -> bool:
        return (
            result.completed is not None
            and result.state.current_field_key is None
            and result.session_end is None
            and result.question is None
        )

    async def _complete_turn(
        self,
        session: PassportSession,
        stored_fields: List[PassportField],
        state: ConversationState,
        memory: SessionMemory,
        loaded_history: History,
        history: History,
    ) -> TurnResult:
        min_fields = self.settings.min_completed_fields
        model_history = history.tail(self.settings.history_max_messages)

        turn = await self.llm.generate_turn(model_history, build_system_prompt(state, memory, min_fields))
        calls = list(turn.tool_calls)
        text = turn.text
        result = self._apply_calls(state, calls)

        if self._needs_next_topic(result):
            below_minimum = len(result.state.completed_fields) < min_fields
            if below_minimum:
                logger.warning(
                    f"🚫 complete_topic without next_topic in {session.id}: "
                    f"{len(result.state.completed_fields)}/{min_fields} fields completed"
                )
            logger.info(f"👉 Topic completed without a next topic in {session.id}, nudging the model")
            nudge_text = NEXT_TOPIC_NUDGE if below_minimum else FINISH_OR_NEXT_TOPIC_NUDGE
            nudge_prompt = build_system_prompt(result.state, memory, min_fields) + "\n\n" + nudge_text
            nudge = await self.llm.generate_turn(model_history, nudge_prompt)
            calls += nudge.tool_calls
            text = text or nudge.text
            result = self._apply_calls(state, calls)
            if below_minimum:
                result.errors.insert(
                    0,
                    ToolError(
                        POLICY_VIOLATION,
                        COMPLETE_TOPIC,
                        f"complete_topic needs a next_topic until {min_fields} fields are completed",
                    ),
                )

        new_state = result.state
        knowledge = new_state.user_experience.startup_knowledge if new_state.user_experience else None
        for new_field in result.new_fields:
            index = next(i for i, f in enumerate(new_state.fields) if f.field_key == new_field.field_key)
            decision = compute_depth(
                new_field.field_key, knowledge, assess_previous_field_quality(new_state.fields, index)
            )
            new_state = transitions.set_depth_reason(new_state, new_field.field_key, decision.reason)

        for completed in result.completed_fields:
            memory = memory_service.update_field_summary(memory, completed.field_key, completed.content)

        if result.session_end is not None:
            reply = result.session_end.message
        elif result.question:
            reply = result.question
        elif text:
            reply = text
        else:
            logger.warning(f"⚠️ No question or text from the model for {session.id}, using fallback")
            reply = CONTINUE_FALLBACK_MESSAGE
        history = history.append("assistant", reply)

        progress = calculate_progress(new_state.completed_fields, min_fields, new_state.is_complete)
        session_end = result.session_end.to_dict() if result.session_end else None

        # Everything below only runs once the whole turn has been computed
        stored_by_key = {f.field_key: f for f in stored_fields}
        changed = [f for f in new_state.fields if stored_by_key.get(f.field_key) != f]
        await self.sessions.upsert_fields(changed)

        updates: Dict[str, Any] = {"memory": memory.model_dump(mode="json"), "progress": progress["percent"]}
        if session.status == "intro":
            updates["status"] = "in-progress"
        if new_state.is_complete:
            updates.update({"status": "completed", "completion": session_end, "completed_at": utc_now()})
            logger.info(f"🏁 Session {session.id} completed with score {result.session_end.score}")
        await self.sessions.patch_session(session.id, updates)
        await self.chats.save_chat_messages(session.id, history.since(loaded_history))

        return TurnResult(
            reply=reply,
            state=new_state,
            fields=self._document_fields(stored_fields, new_state),
            session_end=session_end,
            tool_errors=result.errors,
            depth=active_depth(new_state),
            progress=progress,
        )

    @staticmethod
    def _document_fields(stored_fields: List[PassportField], state: ConversationState) -> List[PassportField]:
        idea = [f for f in stored_fields if f.field_key == IDEA_FIELD_KEY]
        return idea + list(state.fields)

    # ---------- stand-alone helpers ----------

    def decide_depth(
        self,
        field_key: str,
        startup_knowledge: Optional[str] = None,
        previous_quality: Optional[str] = None,
        previous_answers: Optional[List[str]] = None,
    ) -> DepthDecision:
        if previous_quality is None and previous_answers is not None:
            previous_quality = assess_answer_quality(previous_answers)
        return compute_depth(field_key, startup_knowledge, previous_quality)

    async def extract_entities(self, answer: str, field_key: str, idea_context: Optional[str] = None):
        return await self.memory_tracker.extract_entities(answer, field_key, idea_context)

    async def check_contradictions(self, memory_summary: str, answer: str, field_key: str) -> ContradictionCheckResult:
        return await self.memory_tracker.check_contradiction(memory_summary, answer, field_key)
