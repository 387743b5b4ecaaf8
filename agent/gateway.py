"""Adapter between the call mediator and the Gemini chat API.

A ``ChatSession`` owns the message list of one request, so a follow-up that
carries a function result is always sent on the same context as the call
that requested it.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, ToolMessage
from langchain_google_genai import (
    ChatGoogleGenerativeAI,
    HarmBlockThreshold,
    HarmCategory,
)

from agent.core.memory import (
    ConversationTurn,
    message_text,
    serialize_history,
    to_lc_messages,
)
from agent.errors import SafetyBlocked, UpstreamError, reason_label
from agent.tools.registry import FunctionCallRequest, FunctionRegistry, FunctionResult
from config.settings import Settings


logger = logging.getLogger(__name__)

SAFETY_SETTINGS = {
    HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
}


@dataclass(frozen=True)
class TextReply:
    text: str


@dataclass(frozen=True)
class FunctionCallRequested:
    call: FunctionCallRequest
    ignored: List[str] = field(default_factory=list)


Reply = Union[TextReply, FunctionCallRequested]


def build_llm(settings: Settings) -> ChatGoogleGenerativeAI:
    kwargs: Dict[str, Any] = {}
    if settings.temperature is not None:
        kwargs["temperature"] = settings.temperature
    if settings.top_p is not None:
        kwargs["top_p"] = settings.top_p
    return ChatGoogleGenerativeAI(
        model=settings.gemini_model,
        google_api_key=settings.google_api_key,
        safety_settings=SAFETY_SETTINGS,
        timeout=settings.model_timeout,
        max_retries=settings.model_max_retries,
        **kwargs,
    )


def check_safety(message: AIMessage) -> None:
    """Raise ``SafetyBlocked`` when the reply metadata reports a block."""
    metadata = message.response_metadata or {}
    feedback = metadata.get("prompt_feedback") or {}
    reason = reason_label(feedback.get("block_reason")) if isinstance(feedback, dict) else None
    if reason:
        raise SafetyBlocked(reason)
    finish_reason = reason_label(metadata.get("finish_reason"))
    if finish_reason and finish_reason.upper() == "SAFETY":
        raise SafetyBlocked()


class ChatSession:
    def __init__(
        self,
        model: Any,
        history: Iterable[BaseMessage],
        timeout: Optional[float] = None,
    ):
        self._model = model
        self._timeout = timeout
        self.messages: List[BaseMessage] = list(history)

    async def _invoke(self) -> AIMessage:
        try:
            reply = await asyncio.wait_for(
                self._model.ainvoke(self.messages), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            raise UpstreamError(
                details=f"Model call timed out after {self._timeout}s"
            )
        check_safety(reply)
        self.messages.append(reply)
        return reply

    async def send(self, text: str) -> Reply:
        self.messages.append(HumanMessage(content=text))
        reply = await self._invoke()

        if not reply.tool_calls:
            return TextReply(message_text(reply))

        first, rest = reply.tool_calls[0], reply.tool_calls[1:]
        ignored = [call["name"] for call in rest]
        if ignored:
            # Only one function call is mediated per turn.
            logger.warning(
                "Model requested %s function calls; only %s is handled, ignoring %s",
                len(reply.tool_calls),
                first["name"],
                ignored,
            )
        call = FunctionCallRequest(
            name=first["name"],
            arguments=dict(first.get("args") or {}),
            call_id=first.get("id"),
        )
        return FunctionCallRequested(call=call, ignored=ignored)

    async def send_follow_up(self, result: FunctionResult) -> str:
        self.messages.append(
            ToolMessage(
                content=json.dumps(result.payload, ensure_ascii=False),
                name=result.name,
                tool_call_id=result.call_id or result.name,
            )
        )
        reply = await self._invoke()
        if reply.tool_calls:
            logger.warning(
                "Model requested %s after a function result; not mediated",
                [call["name"] for call in reply.tool_calls],
            )
        return message_text(reply)

    def history(self) -> List[Dict[str, Any]]:
        return serialize_history(self.messages)


class GeminiGateway:
    """Sends turns to the model with the registry's functions bound."""

    def __init__(
        self,
        llm: BaseChatModel,
        registry: FunctionRegistry,
        timeout: Optional[float] = None,
    ):
        self._model = llm.bind_tools(list(registry.tools))
        self._timeout = timeout

    def start_chat(self, turns: Iterable[ConversationTurn]) -> ChatSession:
        return ChatSession(self._model, to_lc_messages(turns), timeout=self._timeout)
