"""Shared fakes: an in-memory Supabase table client and a scripted OpenAI client."""

import copy
import json
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from config import Settings
from main import create_app
from services.chat_service import ChatService
from services.conversation_service import ConversationService
from services.llm_service import LLMService
from services.memory_service import MemoryTracker
from services.session_service import SessionService


# ---------- Supabase ----------

class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.payload = None
        self.on_conflict = None
        self.filters = []
        self.order_by = None
        self.limit_to = None

    def select(self, *_columns):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.op = "update"
        self.payload = payload
        return self

    def upsert(self, payload, on_conflict=None):
        self.op = "upsert"
        self.payload = payload
        self.on_conflict = on_conflict
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.limit_to = count
        return self

    def _matches(self, row):
        return all(row.get(column) == value for column, value in self.filters)

    def execute(self):
        if (self.table_name, self.op) in self.db.failures:
            raise APIError({"message": f"{self.op} on {self.table_name} failed", "code": "XX000"})

        rows = self.db.tables.setdefault(self.table_name, [])
        payload = self.payload if isinstance(self.payload, list) else [self.payload]
        # jsonb round trip, like the real store
        payload = json.loads(json.dumps(payload))
        self.db.writes.append((self.table_name, self.op))

        if self.op == "select":
            data = [copy.deepcopy(r) for r in rows if self._matches(r)]
            if self.order_by:
                column, desc = self.order_by
                data.sort(key=lambda r: r.get(column), reverse=desc)
            if self.limit_to is not None:
                data = data[: self.limit_to]
            return SimpleNamespace(data=data)

        if self.op == "insert":
            for row in payload:
                if self.table_name == "messages" and "id" not in row:
                    self.db.next_id += 1
                    row["id"] = self.db.next_id
                rows.append(row)
            return SimpleNamespace(data=copy.deepcopy(payload))

        if self.op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(payload[0])
                    updated.append(copy.deepcopy(row))
            return SimpleNamespace(data=updated)

        keys = (self.on_conflict or "id").split(",")
        for new_row in payload:
            existing = next((r for r in rows if all(r.get(k) == new_row.get(k) for k in keys)), None)
            if existing is None:
                rows.append(new_row)
            else:
                existing.update(new_row)
        return SimpleNamespace(data=copy.deepcopy(payload))


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.failures = set()
        self.writes = []
        self.next_id = 0

    def table(self, name):
        return FakeQuery(self, name)

    def rows(self, name):
        return self.tables.get(name, [])


# ---------- OpenAI ----------

def tool_call(name, /, **arguments):
    return SimpleNamespace(
        id=f"call_{name}",
        type="function",
        function=SimpleNamespace(name=name, arguments=json.dumps(arguments, ensure_ascii=False)),
    )


def completion(content=None, tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeCompletions:
    """Pops scripted replies: ``turns`` for tool-calling requests, ``json_replies`` for JSON ones."""

    def __init__(self):
        self.turns = []
        self.json_replies = []
        self.calls = []

    def tool_calls_made(self):
        return [c for c in self.calls if "tools" in c]

    def json_calls_made(self):
        return [c for c in self.calls if "response_format" in c]

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        is_json = "response_format" in kwargs
        queue = self.json_replies if is_json else self.turns
        if not queue:
            return completion("{}") if is_json else completion()
        reply = queue.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict):
            return completion(json.dumps(reply, ensure_ascii=False))
        if isinstance(reply, str):
            return completion(reply)
        if isinstance(reply, list):
            return completion(tool_calls=reply)
        return reply


class FakeOpenAI:
    def __init__(self):
        self.completions = FakeCompletions()
        self.chat = SimpleNamespace(completions=self.completions)


# ---------- fixtures ----------

@pytest.fixture
def settings():
    return Settings(openai_api_key="sk-test", supabase_url="http://localhost:54321", supabase_key="service-key")


@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture
def openai_client():
    return FakeOpenAI()


@pytest.fixture
def llm(openai_client):
    return LLMService(openai_client)


@pytest.fixture
def service(settings, db, llm):
    return ConversationService(
        settings=settings,
        llm=llm,
        sessions=SessionService(db),
        chats=ChatService(db),
        memory_tracker=MemoryTracker(llm, entity_cap=settings.entity_cap),
    )


@pytest.fixture
def client(service, settings):
    with TestClient(create_app(service, settings)) as test_client:
        yield test_client
