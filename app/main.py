from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Awaitable, Dict, List, Optional, TypeVar

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from agent.agent import ChatMediator, build_agent
from agent.core.memory import to_turns
from agent.errors import (
    ChatError,
    ClientDisconnected,
    ConfigurationMissing,
    InvalidRequest,
    UpstreamError,
    classify_error,
)
from app.database import LogDatabase
from config.settings import get_settings


settings = get_settings()

logging.basicConfig(level=settings.log_level, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("ifcode")

PROJECT_ROOT = Path(__file__).resolve().parents[1]
DISCONNECT_POLL_SECONDS = 1.0

T = TypeVar("T")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    try:
        settings.require()
    except ConfigurationMissing as exc:
        logger.error("%s", exc.message)
        raise

    logger.info(
        "Config: model=%s timeout=%ss timezone=%s key_set=%s",
        settings.gemini_model,
        settings.model_timeout,
        settings.timezone,
        bool(settings.google_api_key),
    )
    database = LogDatabase(settings.mongo_uri, settings.mongo_db_name)
    await database.connect()
    app.state.database = database
    app.state.agent = build_agent(settings)
    try:
        yield
    finally:
        await database.close()


app = FastAPI(title="ifcode Chat Assistant", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class HistoryEntry(BaseModel):
    author: Optional[str] = Field(None, description="'model' for assistant turns, anything else is the user")
    content: Optional[str] = None


class ChatRequest(BaseModel):
    message: Optional[str] = Field(None, description="User's latest message")
    history: Optional[List[HistoryEntry]] = Field(
        default=None,
        description="Conversation so far, managed by the frontend",
    )


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Rejected malformed request: %s", exc.errors())
    return JSONResponse(status_code=400, content={"error": "Corpo da requisição inválido."})


def get_agent(request: Request) -> ChatMediator:
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        raise UpstreamError(details="Chat agent not initialized")
    return agent


async def run_until_disconnected(
    request: Request, work: Awaitable[T], poll_interval: float = DISCONNECT_POLL_SECONDS
) -> T:
    """Await ``work``, cancelling it if the client goes away first."""
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.warning("Client disconnected, cancelling chat request")
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()


@app.post("/chat")
async def chat(
    req: ChatRequest,
    request: Request,
    agent: ChatMediator = Depends(get_agent),
) -> Dict[str, Any]:
    if not req.message:
        raise InvalidRequest("A mensagem é obrigatória.")

    turns = to_turns([entry.model_dump() for entry in req.history or []])
    logger.info(
        "Incoming chat: message_len=%s history_turns=%s", len(req.message), len(turns)
    )
    try:
        reply = await run_until_disconnected(request, agent.run(req.message, turns))
    except ClientDisconnected:
        raise
    except Exception as exc:
        error = classify_error(exc)
        logger.exception("Chat processing failed (%s): %s", error.http_status, exc)
        if error is exc:
            raise
        raise error from exc

    return {"response": reply.text, "history": reply.history}


@app.get("/health")
async def health(request: Request) -> Dict[str, Any]:
    database: Optional[LogDatabase] = getattr(request.app.state, "database", None)
    if database is None:
        database_status = "disabled"
    else:
        database_status = "up" if await database.ping() else "down"
    agent: Optional[ChatMediator] = getattr(request.app.state, "agent", None)
    return {
        "status": "ok",
        "database": database_status,
        "functions": agent.registry.names() if agent else [],
    }


static_dir = Path(settings.static_dir)
if not static_dir.is_absolute():
    static_dir = PROJECT_ROOT / static_dir
if static_dir.is_dir():
    # Mounted last so the API routes above take precedence.
    app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")


def main() -> None:
    missing = settings.missing()
    if missing:
        logger.error("Missing required environment variables: %s", ", ".join(missing))
        sys.exit(1)

    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
