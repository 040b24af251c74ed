import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from exceptions import LLMServiceError
from models.conversation import History
from services.tool_executor import ToolInvocation
from utils.tool_definitions import TOOL_DEFINITIONS

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


@dataclass
class ModelTurn:
    text: Optional[str] = None
    tool_calls: List[ToolInvocation] = field(default_factory=list)


def parse_json_reply(content: str) -> Dict[str, Any]:
    """Parse a JSON object out of a model reply, tolerating code fences or prose around it"""
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        match = _JSON_OBJECT.search(content or "")
        if not match:
            raise LLMServiceError(f"No JSON object in model reply: {content[:100]!r}")
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise LLMServiceError(f"Invalid JSON in model reply: {exc}") from exc
    if not isinstance(data, dict):
        raise LLMServiceError("Model reply JSON is not an object")
    return data


class LLMService:
    """Thin wrapper over the chat completions API used for every model call."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "gpt-4o",
        json_model: str = "gpt-4o-mini",
        tool_choice: str = "required",
    ):
        self.client = client
        self.model = model
        self.json_model = json_model
        self.tool_choice = tool_choice

    async def generate_turn(self, history: History, system_prompt: str) -> ModelTurn:
        """One mentor turn: system prompt + history in, text and/or tool calls out."""
        messages = [{"role": "system", "content": system_prompt}] + history.to_openai()
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                tools=TOOL_DEFINITIONS,
                tool_choice=self.tool_choice,
                temperature=0.7,
            )
        except OpenAIError as e:
            logger.error(f"❌ Chat completion failed: {e}")
            raise LLMServiceError(str(e)) from e

        if not response.choices:
            raise LLMServiceError("Model returned no choices")

        message = response.choices[0].message
        tool_calls = [
            ToolInvocation(name=call.function.name, arguments=call.function.arguments, id=call.id)
            for call in (message.tool_calls or [])
        ]
        text = (message.content or "").strip() or None
        logger.info(f"🤖 Model turn: {len(tool_calls)} tool call(s), text={'yes' if text else 'no'}")
        return ModelTurn(text=text, tool_calls=tool_calls)

    async def generate_json(self, prompt: str) -> Dict[str, Any]:
        try:
            response = await self.client.chat.completions.create(
                model=self.json_model,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
                temperature=0.1,
            )
        except OpenAIError as e:
            raise LLMServiceError(str(e)) from e

        if not response.choices:
            raise LLMServiceError("Model returned no choices")
        return parse_json_reply(response.choices[0].message.content or "")
