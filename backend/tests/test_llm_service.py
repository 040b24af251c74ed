import asyncio

import pytest
from openai import OpenAIError

from conftest import completion, tool_call
from exceptions import LLMServiceError
from models.conversation import History
from services.llm_service import parse_json_reply


class TestGenerateTurn:
    def test_sends_system_prompt_history_and_tools(self, llm, openai_client):
        openai_client.completions.turns.append([tool_call("ask_followup", question="რატომ?")])
        history = History().append("assistant", "გამარჯობა").append("user", "ჩემი იდეა")

        turn = asyncio.run(llm.generate_turn(history, "SYSTEM"))

        request = openai_client.completions.calls[0]
        assert request["messages"][0] == {"role": "system", "content": "SYSTEM"}
        assert request["messages"][1:] == [
            {"role": "assistant", "content": "გამარჯობა"},
            {"role": "user", "content": "ჩემი იდეა"},
        ]
        assert request["tool_choice"] == "required"
        assert [t["function"]["name"] for t in request["tools"]][0] == "start_topic"
        assert turn.text is None
        assert turn.tool_calls[0].name == "ask_followup"
        assert turn.tool_calls[0].id == "call_ask_followup"

    def test_text_only_reply(self, llm, openai_client):
        openai_client.completions.turns.append(completion("  მოდი ვისაუბროთ  "))
        turn = asyncio.run(llm.generate_turn(History(), "SYSTEM"))
        assert turn.text == "მოდი ვისაუბროთ"
        assert turn.tool_calls == []

    def test_provider_errors_are_wrapped(self, llm, openai_client):
        openai_client.completions.turns.append(OpenAIError("rate limited"))
        with pytest.raises(LLMServiceError):
            asyncio.run(llm.generate_turn(History(), "SYSTEM"))


class TestGenerateJson:
    def test_requests_json_object(self, llm, openai_client):
        openai_client.completions.json_replies.append({"has_contradiction": False})
        data = asyncio.run(llm.generate_json("prompt"))
        assert data == {"has_contradiction": False}
        assert openai_client.completions.calls[0]["response_format"] == {"type": "json_object"}
        assert openai_client.completions.calls[0]["model"] == "gpt-4o-mini"

    def test_invalid_json_raises(self, llm, openai_client):
        openai_client.completions.json_replies.append("definitely not json")
        with pytest.raises(LLMServiceError):
            asyncio.run(llm.generate_json("prompt"))


class TestParseJsonReply:
    def test_plain(self):
        assert parse_json_reply('{"a": 1}') == {"a": 1}

    def test_fenced(self):
        assert parse_json_reply('```json\n{"audiences": ["x"]}\n```') == {"audiences": ["x"]}

    def test_array_is_rejected(self):
        with pytest.raises(LLMServiceError):
            parse_json_reply("[1, 2]")
