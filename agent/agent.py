from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from agent.core.memory import ConversationTurn
from agent.core.prompt import compose_user_message
from agent.gateway import GeminiGateway, TextReply, build_llm
from agent.tools import FunctionRegistry, build_registry
from config.settings import Settings, get_settings


logger = logging.getLogger(__name__)


@dataclass
class ChatReply:
    text: str
    history: List[Dict[str, Any]]


class ChatMediator:
    """Runs one chat request through the model, mediating at most one function call."""

    def __init__(self, gateway: GeminiGateway, registry: FunctionRegistry):
        self.gateway = gateway
        self.registry = registry

    async def run(self, message: str, turns: Iterable[ConversationTurn]) -> ChatReply:
        session = self.gateway.start_chat(turns)
        logger.info("Sending message to Gemini (%s chars)", len(message))
        reply = await session.send(compose_user_message(message))

        if isinstance(reply, TextReply):
            logger.info("Gemini replied without a function call: %s chars", len(reply.text))
            return ChatReply(text=reply.text, history=session.history())

        call = reply.call
        logger.info("Gemini requested function %s with args %s", call.name, call.arguments)
        result = self.registry.invoke(call)
        text = await session.send_follow_up(result)
        logger.info("Gemini replied after function %s: %s chars", call.name, len(text))
        return ChatReply(text=text, history=session.history())


def build_agent(settings: Optional[Settings] = None) -> ChatMediator:
    settings = settings or get_settings()
    registry = build_registry(settings.timezone)
    gateway = GeminiGateway(build_llm(settings), registry, timeout=settings.model_timeout)
    return ChatMediator(gateway, registry)
