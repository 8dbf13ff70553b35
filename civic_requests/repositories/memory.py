"""
In-process repositories used when ``STORAGE_BACKEND=memory``.

They honour the same contract as the Mongo repositories: atomic appends,
version-conditioned updates and distance-ordered geo listing.
"""

from __future__ import annotations

import asyncio
import copy
from collections import defaultdict
from typing import Any, Dict, List, Optional

from bson import ObjectId

from civic_requests.models.location import distance_m
from civic_requests.models.query import RequestQuery


def _apply_update(doc: Dict[str, Any], update: Dict[str, Any]) -> None:
    for key, value in update.get("$set", {}).items():
        doc[key] = copy.deepcopy(value)
    for key, value in update.get("$push", {}).items():
        doc.setdefault(key, []).append(copy.deepcopy(value))
    for key, value in update.get("$inc", {}).items():
        doc[key] = doc.get(key, 0) + value


class InMemoryServiceRequestRepository:
    def __init__(self):
        self._docs: Dict[str, Dict[str, Any]] = {}
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def _out(self, d: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(d) if d is not None else None

    async def insert(self, document: Dict[str, Any]) -> Dict[str, Any]:
        request_id = str(ObjectId())
        stored = copy.deepcopy(document)
        stored["id"] = request_id
        self._docs[request_id] = stored
        return self._out(stored)

    async def find_by_id(self, request_id: str) -> Optional[Dict[str, Any]]:
        return self._out(self._docs.get(request_id))

    async def update_versioned(
        self, request_id: str, expected_version: int, update: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        async with self._locks[request_id]:
            doc = self._docs.get(request_id)
            if doc is None or doc.get("version", 0) != expected_version:
                return None
            _apply_update(doc, update)
            return self._out(doc)

    async def push(
        self, request_id: str, field: str, item: Dict[str, Any], updated_at
    ) -> Optional[Dict[str, Any]]:
        async with self._locks[request_id]:
            doc = self._docs.get(request_id)
            if doc is None:
                return None
            _apply_update(doc, {"$push": {field: item}, "$set": {"updated_at": updated_at}})
            return self._out(doc)

    async def list_requests(self, query: RequestQuery) -> List[Dict[str, Any]]:
        wanted = query.to_mongo_filter()
        docs = [
            d for d in self._docs.values()
            if all(d.get(k) == v for k, v in wanted.items())
        ]

        geo = query.filters.geo_near
        if geo is None:
            docs.sort(key=lambda d: (d["created_at"], d["id"]), reverse=True)
        else:
            ranked = []
            for d in docs:
                dist = distance_m(geo.point, d["location"]["coordinates"])
                if geo.max_distance_m is not None and dist > geo.max_distance_m:
                    continue
                ranked.append(dict(d, distance=dist))
            ranked.sort(key=lambda d: (d["distance"], d["created_at"], d["id"]))
            docs = ranked

        page = docs[query.offset: query.offset + query.limit]
        return [self._out(d) for d in page]


class InMemoryUserRepository:
    def __init__(self):
        self._users: Dict[str, Dict[str, Any]] = {}

    def add(self, email: str, role: str, status: str = "active", user_id: Optional[str] = None) -> str:
        user_id = user_id or str(ObjectId())
        self._users[user_id] = {"id": user_id, "email": email, "role": role, "status": status}
        return user_id

    async def get_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._users.get(user_id))


class InMemoryAuditRepository:
    def __init__(self):
        self._events: List[Dict[str, Any]] = []

    async def list(self, limit: int = 100):
        events = sorted(self._events, key=lambda e: e["time"], reverse=True)
        return copy.deepcopy(events[:limit])

    async def create(self, data: dict):
        event = copy.deepcopy(data)
        event.setdefault("id", str(ObjectId()))
        self._events.append(event)
