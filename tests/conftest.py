"""Pytest configuration and fixtures."""
import asyncio
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from agent.agent import ChatMediator
from agent.gateway import GeminiGateway
from agent.tools import FunctionRegistry, build_current_time_tool
from app.main import app, get_agent


FIXED_NOW = (2026, 10, 19, 14, 5, 9)


class ScriptedChatModel:
    """Stands in for the tool-bound Gemini model, replaying queued replies."""

    def __init__(self, replies=()):
        self.replies = list(replies)
        self.calls = []
        self.bound_tools = None

    def bind_tools(self, tools, **kwargs):
        self.bound_tools = list(tools)
        return self

    async def ainvoke(self, messages):
        self.calls.append(list(messages))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def fixed_clock():
    return lambda tz: datetime(*FIXED_NOW, tzinfo=tz)


@pytest.fixture
def registry(fixed_clock):
    return FunctionRegistry([build_current_time_tool(clock=fixed_clock)])


@pytest.fixture
def model():
    return ScriptedChatModel()


@pytest.fixture
def gateway(model, registry):
    return GeminiGateway(model, registry, timeout=1.0)


@pytest.fixture
def mediator(gateway, registry):
    return ChatMediator(gateway, registry)


@pytest.fixture
def make_client():
    """Create a test client whose chat agent is replaced by ``agent``."""

    def _make(agent):
        app.dependency_overrides[get_agent] = lambda: agent
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()


@pytest.fixture
def fake_clients(monkeypatch):
    """Replace the Mongo client with an in-memory stand-in and collect every client created."""
    created = []

    class FakeMongoClient:
        def __init__(self, uri, **kwargs):
            self.uri = uri
            self.kwargs = kwargs
            self.closed = False
            self.admin = self
            created.append(self)

        async def command(self, name):
            await asyncio.sleep(0)
            return {"ok": 1}

        def __getitem__(self, name):
            return {"database": name}

        async def close(self):
            self.closed = True

    monkeypatch.setattr("app.database.AsyncMongoClient", FakeMongoClient)
    return created
