"""Runtime settings loaded from the environment (and a local .env file)."""

import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv


def _int_env(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}, got {value}")
    return value


def cors_origins_from_env() -> List[str]:
    origins = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
    return origins or ["*"]


@dataclass
class Settings:
    openai_api_key: str
    supabase_url: str
    supabase_key: str
    openai_model: str = "gpt-4o"
    openai_json_model: str = "gpt-4o-mini"
    tool_choice: str = "required"
    min_completed_fields: int = 5
    entity_cap: int = 10
    history_max_messages: int = 30
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def load(cls) -> "Settings":
        """Read settings from environment variables, loading .env first."""
        load_dotenv()

        missing = [name for name in ("OPENAI_API_KEY", "SUPABASE_URL", "SUPABASE_KEY") if not os.getenv(name)]
        if missing:
            raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

        tool_choice = os.getenv("OPENAI_TOOL_CHOICE", "required")
        if tool_choice not in ("auto", "required"):
            raise RuntimeError(f"OPENAI_TOOL_CHOICE must be 'auto' or 'required', got {tool_choice!r}")

        return cls(
            openai_api_key=os.environ["OPENAI_API_KEY"],
            supabase_url=os.environ["SUPABASE_URL"],
            supabase_key=os.environ["SUPABASE_KEY"],
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o"),
            openai_json_model=os.getenv("OPENAI_JSON_MODEL", "gpt-4o-mini"),
            tool_choice=tool_choice,
            min_completed_fields=_int_env("MIN_COMPLETED_FIELDS", 5, minimum=1),
            entity_cap=_int_env("ENTITY_CAP", 10, minimum=1),
            history_max_messages=_int_env("HISTORY_MAX_MESSAGES", 30, minimum=2),
            cors_origins=cors_origins_from_env(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
