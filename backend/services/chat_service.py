import logging
from typing import Dict, Iterable, List

from supabase import Client

from models.conversation import ChatMessage, History
from models.passport import utc_now

logger = logging.getLogger(__name__)

MESSAGES_TABLE = "messages"


class ChatService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    async def fetch_chat_history(self, session_id: str) -> List[Dict]:
        result = (
            self.supabase.table(MESSAGES_TABLE)
            .select("*")
            .eq("session_id", session_id)
            .order("id")
            .execute()
        )
        return result.data or []

    async def load_history(self, session_id: str) -> History:
        return History.from_rows(await self.fetch_chat_history(session_id))

    async def save_chat_messages(self, session_id: str, messages: Iterable[ChatMessage]) -> None:
        now = utc_now()
        rows = [
            {"session_id": session_id, "role": m.role, "content": m.content, "created_at": now}
            for m in messages
        ]
        if not rows:
            return
        self.supabase.table(MESSAGES_TABLE).insert(rows).execute()
        logger.info(f"💬 Stored {len(rows)} message(s) for session {session_id}")
