"""Conversation history handling.

There is no server-side memory. The frontend sends the dialogue so far with
every request and gets the updated dialogue back, so this module only
converts between the caller's ``{author, content}`` entries, internal turns,
langchain messages and the Gemini-style history returned to the caller.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, ToolMessage


USER = "user"
MODEL = "model"
FUNCTION = "function"


@dataclass(frozen=True)
class ConversationTurn:
    role: str
    text: str


def to_turns(history: Optional[Iterable[Mapping[str, Any]]]) -> List[ConversationTurn]:
    """Map caller history onto turns; only ``author == "model"`` is a model turn."""
    turns: List[ConversationTurn] = []
    for item in history or []:
        role = MODEL if item.get("author") == MODEL else USER
        turns.append(ConversationTurn(role=role, text=item.get("content") or ""))
    return turns


def to_lc_messages(turns: Iterable[ConversationTurn]) -> List[BaseMessage]:
    messages: List[BaseMessage] = []
    for turn in turns:
        if turn.role == MODEL:
            messages.append(AIMessage(content=turn.text))
        else:
            messages.append(HumanMessage(content=turn.text))
    return messages


def message_text(message: BaseMessage) -> str:
    """Plain text of a message whose content may be a list of parts."""
    content = message.content
    if isinstance(content, str):
        return content
    chunks = []
    for part in content or []:
        if isinstance(part, str):
            chunks.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            chunks.append(part.get("text") or "")
    return "".join(chunks)


def _decode_payload(content: Any) -> Any:
    if isinstance(content, str):
        try:
            return json.loads(content)
        except json.JSONDecodeError:
            return {"result": content}
    return content


def serialize_history(messages: Iterable[BaseMessage]) -> List[Dict[str, Any]]:
    """Render messages as ``{role, parts}`` contents, the shape Gemini reports."""
    history: List[Dict[str, Any]] = []
    for message in messages:
        if isinstance(message, ToolMessage):
            history.append(
                {
                    "role": FUNCTION,
                    "parts": [
                        {
                            "functionResponse": {
                                "name": message.name,
                                "response": _decode_payload(message.content),
                            }
                        }
                    ],
                }
            )
        elif isinstance(message, AIMessage):
            parts: List[Dict[str, Any]] = []
            text = message_text(message)
            if text:
                parts.append({"text": text})
            for call in message.tool_calls:
                parts.append({"functionCall": {"name": call["name"], "args": call["args"]}})
            if not parts:
                parts.append({"text": ""})
            history.append({"role": MODEL, "parts": parts})
        else:
            history.append({"role": USER, "parts": [{"text": message_text(message)}]})
    return history
