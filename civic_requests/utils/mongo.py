from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Optional, TypeVar

from bson import ObjectId
from pymongo.errors import (
    AutoReconnect,
    ConnectionFailure,
    ExecutionTimeout,
    NetworkTimeout,
    ServerSelectionTimeoutError,
)

from civic_requests.core.errors import StorageUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS = (
    AutoReconnect,
    ConnectionFailure,
    ExecutionTimeout,
    NetworkTimeout,
    ServerSelectionTimeoutError,
)


def serialize_mongo(obj):
    """
    Recursively convert MongoDB objects to JSON-safe values
    """
    if isinstance(obj, ObjectId):
        return str(obj)

    if isinstance(obj, datetime):
        return obj.isoformat()

    if isinstance(obj, list):
        return [serialize_mongo(i) for i in obj]

    if isinstance(obj, dict):
        return {k: serialize_mongo(v) for k, v in obj.items()}

    return obj


def parse_oid(x: str | None) -> Optional[ObjectId]:
    if not x:
        return None
    x = x.strip()
    if not ObjectId.is_valid(x):
        return None
    return ObjectId(x)


async def bounded(awaitable: Awaitable[T], timeout: float, op: str = "storage") -> T:
    """Await a storage call with a deadline; timeouts surface as StorageUnavailable."""
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError:
        logger.warning("storage call timed out", extra={"op": op, "timeout": timeout})
        raise StorageUnavailable(f"{op} timed out") from None
    except TRANSIENT_ERRORS as exc:
        logger.warning("storage unavailable", extra={"op": op, "error": str(exc)})
        raise StorageUnavailable(f"{op} failed: {exc.__class__.__name__}") from exc
