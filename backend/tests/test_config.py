import pytest

import config
from config import Settings
from utils.progress import calculate_progress

REQUIRED = {
    "OPENAI_API_KEY": "sk-test",
    "SUPABASE_URL": "http://localhost:54321",
    "SUPABASE_KEY": "service-key",
}

OPTIONAL = [
    "OPENAI_MODEL",
    "OPENAI_JSON_MODEL",
    "OPENAI_TOOL_CHOICE",
    "MIN_COMPLETED_FIELDS",
    "ENTITY_CAP",
    "HISTORY_MAX_MESSAGES",
    "CORS_ORIGINS",
    "LOG_LEVEL",
]


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setattr(config, "load_dotenv", lambda *args, **kwargs: False)
    for name in OPTIONAL:
        monkeypatch.delenv(name, raising=False)
    for name, value in REQUIRED.items():
        monkeypatch.setenv(name, value)
    return monkeypatch


class TestSettings:
    def test_defaults(self, env):
        settings = Settings.load()
        assert settings.openai_model == "gpt-4o"
        assert settings.tool_choice == "required"
        assert settings.min_completed_fields == 5
        assert settings.entity_cap == 10
        assert settings.cors_origins == ["*"]

    def test_overrides(self, env):
        env.setenv("MIN_COMPLETED_FIELDS", "6")
        env.setenv("CORS_ORIGINS", "https://cofounder.ge, http://localhost:3000")
        env.setenv("LOG_LEVEL", "debug")
        settings = Settings.load()
        assert settings.min_completed_fields == 6
        assert settings.cors_origins == ["https://cofounder.ge", "http://localhost:3000"]
        assert settings.log_level == "DEBUG"

    def test_missing_required(self, env):
        env.delenv("SUPABASE_KEY")
        with pytest.raises(RuntimeError, match="SUPABASE_KEY"):
            Settings.load()

    def test_invalid_integer(self, env):
        env.setenv("ENTITY_CAP", "ten")
        with pytest.raises(RuntimeError, match="ENTITY_CAP"):
            Settings.load()

    def test_invalid_tool_choice(self, env):
        env.setenv("OPENAI_TOOL_CHOICE", "none")
        with pytest.raises(RuntimeError):
            Settings.load()


class TestProgress:
    def test_partial(self):
        assert calculate_progress(["problem", "solution"], 5) == {
            "completed": 2,
            "required": 5,
            "remaining": 3,
            "percent": 40,
        }

    def test_capped_until_complete(self):
        keys = ["a", "b", "c", "d", "e", "f"]
        assert calculate_progress(keys, 5)["percent"] == 99
        assert calculate_progress(keys, 5, is_complete=True)["percent"] == 100
