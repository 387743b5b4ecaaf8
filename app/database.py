from __future__ import annotations

import asyncio
import logging
from typing import Optional

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.server_api import ServerApi


logger = logging.getLogger(__name__)


class LogDatabase:
    """Process-scoped handle on the logs database.

    Opened once during application startup; ``connect`` is serialised by a
    lock so concurrent first callers share the same client.
    """

    def __init__(self, uri: str, name: str):
        self._uri = uri
        self._name = name
        self._client: Optional[AsyncMongoClient] = None
        self._db: Optional[AsyncDatabase] = None
        self._lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._db is not None

    async def connect(self) -> AsyncDatabase:
        async with self._lock:
            if self._db is not None:
                return self._db
            client = AsyncMongoClient(
                self._uri,
                server_api=ServerApi("1", strict=True, deprecation_errors=True),
            )
            await client.admin.command("ping")
            self._client = client
            self._db = client[self._name]
            logger.info("Connected to MongoDB database %s", self._name)
            return self._db

    async def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.admin.command("ping")
        except Exception as exc:
            logger.warning("MongoDB ping failed: %s", exc)
            return False
        return True

    async def close(self) -> None:
        async with self._lock:
            if self._client is not None:
                await self._client.close()
                logger.info("MongoDB connection closed")
            self._client = None
            self._db = None
