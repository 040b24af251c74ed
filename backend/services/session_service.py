import logging
import uuid
from typing import Any, Dict, List, Optional

from supabase import Client

from exceptions import SessionNotFoundError
from models.passport import PassportField, utc_now

logger = logging.getLogger(__name__)

SESSIONS_TABLE = "sessions"
FIELDS_TABLE = "passport_fields"


class SessionService:
    """Sessions and passport field rows in Supabase."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    async def create_session(self, session_id: Optional[str] = None) -> Dict[str, Any]:
        now = utc_now()
        row = {
            "id": session_id or str(uuid.uuid4()),
            "status": "intro",
            "progress": 0,
            "created_at": now,
            "updated_at": now,
        }
        result = self.supabase.table(SESSIONS_TABLE).insert(row).execute()
        logger.info(f"🆕 Created session {row['id']}")
        return result.data[0] if result.data else row

    async def get_session(self, session_id: str) -> Dict[str, Any]:
        result = self.supabase.table(SESSIONS_TABLE).select("*").eq("id", session_id).limit(1).execute()
        if not result.data:
            raise SessionNotFoundError(session_id)
        return result.data[0]

    async def patch_session(self, session_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        payload = dict(updates)
        payload["updated_at"] = utc_now()
        result = self.supabase.table(SESSIONS_TABLE).update(payload).eq("id", session_id).execute()
        if not result.data:
            raise SessionNotFoundError(session_id)
        return result.data[0]

    async def list_fields(self, session_id: str) -> List[PassportField]:
        result = (
            self.supabase.table(FIELDS_TABLE)
            .select("*")
            .eq("session_id", session_id)
            .order("order_index")
            .execute()
        )
        return [PassportField.from_row(row) for row in result.data or []]

    async def upsert_fields(self, fields: List[PassportField]) -> None:
        if not fields:
            return
        rows = [f.to_row() for f in fields]
        self.supabase.table(FIELDS_TABLE).upsert(rows, on_conflict="session_id,field_key").execute()
        logger.info(f"💾 Saved {len(rows)} field(s): {[r['field_key'] for r in rows]}")

    async def get_memory(self, session_id: str) -> Optional[Dict[str, Any]]:
        session = await self.get_session(session_id)
        return session.get("memory")

    async def save_memory(self, session_id: str, memory: Dict[str, Any]) -> Dict[str, Any]:
        return await self.patch_session(session_id, {"memory": memory})
