from __future__ import annotations

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, GEOSPHERE

from civic_requests.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None


def get_client(settings: Optional[Settings] = None) -> AsyncIOMotorClient:
    global _client
    if _client is None:
        settings = settings or get_settings()
        timeout_ms = int(settings.storage_timeout_seconds * 1000)
        _client = AsyncIOMotorClient(
            settings.mongo_uri,
            tz_aware=True,
            serverSelectionTimeoutMS=timeout_ms,
            connectTimeoutMS=timeout_ms,
            socketTimeoutMS=timeout_ms,
        )
    return _client


def get_db(settings: Optional[Settings] = None) -> AsyncIOMotorDatabase:
    settings = settings or get_settings()
    return get_client(settings)[settings.mongo_db]


def close_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    requests = db["service_requests"]
    await requests.create_index([("location", GEOSPHERE)])
    await requests.create_index([("citizen_id", ASCENDING), ("created_at", DESCENDING)])
    await requests.create_index([("status", ASCENDING)])
    await requests.create_index([("created_at", DESCENDING)])
    await db["audit_logs"].create_index([("time", DESCENDING)])
    logger.info("mongo indexes ensured", extra={"db": db.name})
