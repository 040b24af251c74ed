import json

from services import conversation_state as transitions
from services.tool_executor import (
    FIELD_ALREADY_COMPLETED,
    INVALID_ARGUMENTS,
    NO_ACTIVE_FIELD,
    TOPIC_ALREADY_ACTIVE,
    UNKNOWN_TOOL,
    ToolInvocation,
    execute_tool,
    execute_tools,
)
from utils.constant import IDEA_FIELD_KEY
from utils.tool_definitions import TOOL_DEFINITIONS

PROBLEM = {"field_key": "problem", "field_name": "პრობლემა", "field_icon": "❓", "question": "🤖 Cofounder\nრა პრობლემას წყვეტს?"}
SOLUTION = {"field_key": "solution", "field_name": "გადაწყვეტა", "field_icon": "💡", "question": "🤖 Cofounder\nროგორ წყვეტს?"}


def call(name, **arguments):
    return ToolInvocation(name=name, arguments=json.dumps(arguments, ensure_ascii=False))


def initial():
    return transitions.create_initial_state("s1")


def assert_single_active(state):
    active = [f.field_key for f in state.fields if f.status == "active"]
    assert len(active) <= 1
    assert (state.current_field_key is None) == (not active)
    if active:
        assert active[0] == state.current_field_key


class TestStartTopic:
    def test_creates_active_field(self):
        result = execute_tool(initial(), call("start_topic", **PROBLEM))

        assert result.ok
        assert result.question == PROBLEM["question"]
        assert result.new_field.field_key == "problem"
        assert result.new_field.status == "active"
        assert result.new_field.order_index == 1
        assert result.new_field.questions == (PROBLEM["question"],)
        assert result.state.current_field_key == "problem"
        assert result.state.questions_asked_in_current_field == 1

    def test_refused_while_another_topic_is_active(self):
        state = execute_tool(initial(), call("start_topic", **PROBLEM)).state
        result = execute_tool(state, call("start_topic", **SOLUTION))

        assert result.errors[0].kind == TOPIC_ALREADY_ACTIVE
        assert result.state is state

    def test_refused_for_completed_field(self):
        state = execute_tools(initial(), [call("start_topic", **PROBLEM), call("complete_topic", content="x")]).state
        result = execute_tool(state, call("start_topic", **PROBLEM))

        assert result.errors[0].kind == FIELD_ALREADY_COMPLETED
        assert result.state is state

    def test_unknown_field_key_is_invalid(self):
        result = execute_tool(initial(), call("start_topic", **{**PROBLEM, "field_key": "weather"}))
        assert result.errors[0].kind == INVALID_ARGUMENTS

    def test_idea_field_cannot_be_opened_as_topic(self):
        result = execute_tool(initial(), call("start_topic", **{**PROBLEM, "field_key": IDEA_FIELD_KEY}))
        assert result.errors[0].kind == INVALID_ARGUMENTS


class TestAskFollowup:
    def test_increments_question_count(self):
        state = execute_tool(initial(), call("start_topic", **PROBLEM)).state
        result = execute_tool(state, call("ask_followup", question="მეტი?", reason="vague"))

        assert result.ok
        assert result.question == "მეტი?"
        assert result.new_field is None
        assert result.state.questions_asked_in_current_field == 2

    def test_without_active_field_is_rejected(self):
        state = initial()
        result = execute_tool(state, call("ask_followup", question="მეტი?"))

        assert result.errors[0].kind == NO_ACTIVE_FIELD
        assert result.question is None
        assert result.state is state


class TestCompleteTopic:
    def test_completes_active_field_and_starts_next(self):
        state = execute_tool(initial(), call("start_topic", **PROBLEM)).state
        result = execute_tool(state, call("complete_topic", content="Summary", next_topic=SOLUTION))

        assert result.ok
        assert result.completed.field_key == "problem"
        assert result.completed.content == "Summary"
        assert result.question == SOLUTION["question"]
        assert result.new_field.field_key == "solution"
        assert result.new_field.order_index == 2
        assert result.state.completed_fields == ("problem",)
        assert result.state.current_field_key == "solution"
        assert_single_active(result.state)

    def test_uses_active_field_not_model_supplied_key(self):
        state = execute_tool(initial(), call("start_topic", **PROBLEM)).state
        result = execute_tool(state, call("complete_topic", content="Summary", field_key="solution"))

        assert result.completed.field_key == "problem"

    def test_without_next_topic_leaves_no_active_field(self):
        state = execute_tool(initial(), call("start_topic", **PROBLEM)).state
        result = execute_tool(state, call("complete_topic", content="Summary"))

        assert result.ok
        assert result.question is None
        assert result.state.current_field_key is None

    def test_without_active_field_is_rejected(self):
        result = execute_tool(initial(), call("complete_topic", content="Summary"))
        assert result.errors[0].kind == NO_ACTIVE_FIELD

    def test_next_topic_already_completed_keeps_completion(self):
        state = execute_tools(
            initial(),
            [call("start_topic", **PROBLEM), call("complete_topic", content="p", next_topic=SOLUTION)],
        ).state
        result = execute_tool(state, call("complete_topic", content="s", next_topic=PROBLEM))

        assert result.completed.field_key == "solution"
        assert result.errors[0].kind == FIELD_ALREADY_COMPLETED
        assert result.state.completed_fields == ("problem", "solution")
        assert result.state.current_field_key is None


class TestEndSession:
    def test_payload_uses_completed_fields_from_state(self):
        state = execute_tools(initial(), [call("start_topic", **PROBLEM), call("complete_topic", content="p")]).state
        result = execute_tool(
            state,
            call("end_session", message="Bye", assessment="Solid", score=8, fields_completed=["a", "b", "c"]),
        )

        assert result.state.is_complete is True
        assert result.session_end.fields_completed == ("problem",)
        assert result.session_end.to_dict() == {
            "message": "Bye",
            "score": 8,
            "assessment": "Solid",
            "fields_completed": ["problem"],
        }

    def test_score_out_of_range_is_invalid(self):
        result = execute_tool(initial(), call("end_session", message="Bye", assessment="", score=11))
        assert result.errors[0].kind == INVALID_ARGUMENTS
        assert result.state.is_complete is False


class TestDecoding:
    def test_unknown_tool_never_mutates_state(self):
        state = execute_tool(initial(), call("start_topic", **PROBLEM)).state
        result = execute_tool(state, call("delete_everything", field_key="problem"))

        assert result.state is state
        assert result.errors[0].kind == UNKNOWN_TOOL
        assert result.errors[0].tool == "delete_everything"

    def test_malformed_json(self):
        result = execute_tool(initial(), ToolInvocation(name="start_topic", arguments="{not json"))
        assert result.errors[0].kind == INVALID_ARGUMENTS

    def test_missing_arguments(self):
        result = execute_tool(initial(), ToolInvocation(name="ask_followup", arguments=None))
        assert result.errors[0].kind == INVALID_ARGUMENTS

    def test_dict_arguments_are_accepted(self):
        result = execute_tool(initial(), ToolInvocation(name="start_topic", arguments=PROBLEM))
        assert result.ok

    def test_registry_matches_executor(self):
        names = [tool["function"]["name"] for tool in TOOL_DEFINITIONS]
        assert names == ["start_topic", "ask_followup", "complete_topic", "end_session"]
        enum = TOOL_DEFINITIONS[0]["function"]["parameters"]["properties"]["field_key"]["enum"]
        assert "problem" in enum
        assert IDEA_FIELD_KEY not in enum


class TestBatches:
    def test_applied_in_order_with_last_values_kept(self):
        result = execute_tools(
            initial(),
            [
                call("start_topic", **PROBLEM),
                call("ask_followup", question="second"),
                call("complete_topic", content="Summary", next_topic=SOLUTION),
            ],
        )

        assert result.ok
        assert result.question == SOLUTION["question"]
        assert result.new_field.field_key == "solution"
        assert [f.field_key for f in result.new_fields] == ["problem", "solution"]
        assert result.completed.field_key == "problem"
        assert result.tools_applied == ["start_topic", "ask_followup", "complete_topic"]
        problem = result.state.fields[0]
        assert problem.question_count == 2
        assert problem.status == "complete"

    def test_errors_accumulate_without_stopping_batch(self):
        result = execute_tools(
            initial(),
            [
                call("ask_followup", question="too early"),
                call("mystery"),
                call("start_topic", **PROBLEM),
            ],
        )

        assert [e.kind for e in result.errors] == [NO_ACTIVE_FIELD, UNKNOWN_TOOL]
        assert result.state.current_field_key == "problem"
        assert result.question == PROBLEM["question"]

    def test_single_active_and_monotonic_completion_hold(self):
        topics = [
            {**PROBLEM},
            {**SOLUTION},
            {"field_key": "target_users", "field_name": "აუდიტორია", "field_icon": "🎯", "question": "ვინ?"},
        ]
        calls = [
            call("start_topic", **topics[0]),
            call("start_topic", **topics[1]),
            call("ask_followup", question="more"),
            call("complete_topic", content="a", next_topic=topics[1]),
            call("complete_topic", content="b", next_topic=topics[0]),
            call("start_topic", **topics[0]),
            call("start_topic", **topics[2]),
            call("complete_topic", content="c"),
            call("ask_followup", question="nothing active"),
        ]
        state = initial()
        completed_so_far = ()
        for invocation in calls:
            state = execute_tool(state, invocation).state
            assert_single_active(state)
            assert state.completed_fields[: len(completed_so_far)] == completed_so_far
            for key in completed_so_far:
                assert next(f for f in state.fields if f.field_key == key).status == "complete"
            completed_so_far = state.completed_fields

        assert state.completed_fields == ("problem", "solution", "target_users")
