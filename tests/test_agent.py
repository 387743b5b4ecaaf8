import pytest
from langchain_core.messages import AIMessage, ToolMessage

from agent.core.memory import ConversationTurn
from agent.core.prompt import SYSTEM_PROMPT


class RecordingRegistry:
    def __init__(self, registry):
        self._registry = registry
        self.requests = []

    def invoke(self, request):
        self.requests.append(request)
        return self._registry.invoke(request)


def call_time(call_id="call-1"):
    return AIMessage(
        content="",
        tool_calls=[{"name": "getCurrentTime", "args": {}, "id": call_id}],
    )


@pytest.mark.asyncio
async def test_text_reply_is_returned_without_consulting_registry(mediator, model, registry):
    recorder = RecordingRegistry(registry)
    mediator.registry = recorder
    model.replies.append(AIMessage(content="Olá, tudo bem?"))

    reply = await mediator.run("oi", [])

    assert reply.text == "Olá, tudo bem?"
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_instruction_is_prefixed_to_the_user_message(mediator, model):
    model.replies.append(AIMessage(content="ok"))

    await mediator.run("Qual é a capital?", [])

    assert model.calls[0][-1].content == f"{SYSTEM_PROMPT}\n\nQual é a capital?"


@pytest.mark.asyncio
async def test_time_function_round_trip_returns_follow_up_text(mediator, model):
    model.replies.extend([call_time(), AIMessage(content="Agora são 14:05 de 19/10/2026.")])

    reply = await mediator.run("What time is it?", [])

    assert reply.text == "Agora são 14:05 de 19/10/2026."
    tool_message = model.calls[1][-1]
    assert isinstance(tool_message, ToolMessage)
    assert '"currentTime": "19/10/2026, 14:05:09"' in tool_message.content


@pytest.mark.asyncio
async def test_pre_function_text_is_never_returned(mediator, model):
    model.replies.extend(
        [
            AIMessage(
                content="Vou verificar...",
                tool_calls=[{"name": "getCurrentTime", "args": {}, "id": "call-1"}],
            ),
            AIMessage(content="São 14:05."),
        ]
    )

    reply = await mediator.run("que horas são?", [])

    assert reply.text == "São 14:05."


@pytest.mark.asyncio
async def test_unknown_function_gets_error_payload_and_conversation_continues(mediator, model):
    model.replies.extend(
        [
            AIMessage(
                content="",
                tool_calls=[{"name": "deleteAllFiles", "args": {"path": "/"}, "id": "call-9"}],
            ),
            AIMessage(content="Não posso fazer isso."),
        ]
    )

    reply = await mediator.run("apague tudo", [])

    assert reply.text == "Não posso fazer isso."
    tool_message = model.calls[1][-1]
    assert tool_message.name == "deleteAllFiles"
    assert "Function deleteAllFiles not implemented or found." in tool_message.content


@pytest.mark.asyncio
async def test_reply_history_covers_the_whole_round_trip(mediator, model):
    model.replies.extend([call_time(), AIMessage(content="São 14:05.")])
    turns = [ConversationTurn("user", "hi"), ConversationTurn("model", "hello")]

    reply = await mediator.run("What time is it?", turns)

    assert reply.history == [
        {"role": "user", "parts": [{"text": "hi"}]},
        {"role": "model", "parts": [{"text": "hello"}]},
        {"role": "user", "parts": [{"text": f"{SYSTEM_PROMPT}\n\nWhat time is it?"}]},
        {"role": "model", "parts": [{"functionCall": {"name": "getCurrentTime", "args": {}}}]},
        {
            "role": "function",
            "parts": [
                {
                    "functionResponse": {
                        "name": "getCurrentTime",
                        "response": {"currentTime": "19/10/2026, 14:05:09"},
                    }
                }
            ],
        },
        {"role": "model", "parts": [{"text": "São 14:05."}]},
    ]
