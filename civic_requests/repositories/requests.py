from __future__ import annotations

from typing import Any, Dict, List, Optional

from pymongo import ReturnDocument

from civic_requests.models.query import RequestQuery
from civic_requests.utils.mongo import bounded, parse_oid


class ServiceRequestRepository:
    """
    Service requests in MongoDB.

    Every call is bounded by ``timeout``. Status changes and department
    assignment are conditioned on the document ``version``; list appends are
    plain ``$push`` so concurrent appends never overwrite each other.
    """

    def __init__(self, col, timeout: float = 5.0):
        self.col = col
        self.timeout = timeout

    def _doc(self, d: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if d is None:
            return None
        d["id"] = str(d.pop("_id"))
        return d

    async def insert(self, document: Dict[str, Any]) -> Dict[str, Any]:
        result = await bounded(self.col.insert_one(document), self.timeout, "insert")
        document["_id"] = result.inserted_id
        return self._doc(document)

    async def find_by_id(self, request_id: str) -> Optional[Dict[str, Any]]:
        oid = parse_oid(request_id)
        if oid is None:
            return None
        doc = await bounded(self.col.find_one({"_id": oid}), self.timeout, "find")
        return self._doc(doc)

    async def update_versioned(
        self, request_id: str, expected_version: int, update: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Apply ``update`` only if nobody bumped the version since it was read."""
        oid = parse_oid(request_id)
        if oid is None:
            return None
        doc = await bounded(
            self.col.find_one_and_update(
                {"_id": oid, "version": expected_version},
                update,
                return_document=ReturnDocument.AFTER,
            ),
            self.timeout,
            "update",
        )
        return self._doc(doc)

    async def push(
        self, request_id: str, field: str, item: Dict[str, Any], updated_at
    ) -> Optional[Dict[str, Any]]:
        oid = parse_oid(request_id)
        if oid is None:
            return None
        doc = await bounded(
            self.col.find_one_and_update(
                {"_id": oid},
                {"$push": {field: item}, "$set": {"updated_at": updated_at}},
                return_document=ReturnDocument.AFTER,
            ),
            self.timeout,
            "push",
        )
        return self._doc(doc)

    async def list_requests(self, query: RequestQuery) -> List[Dict[str, Any]]:
        filters = query.to_mongo_filter()
        geo = query.filters.geo_near

        if geo is None:
            cursor = (
                self.col.find(filters)
                .sort([("created_at", -1), ("_id", -1)])
                .skip(query.offset)
                .limit(query.limit)
            )
            docs = await bounded(cursor.to_list(length=query.limit), self.timeout, "list")
            return [self._doc(d) for d in docs]

        near: Dict[str, Any] = {
            "near": {"type": "Point", "coordinates": geo.point},
            "distanceField": "distance",
            "spherical": True,
            "query": filters,
        }
        if geo.max_distance_m is not None:
            near["maxDistance"] = geo.max_distance_m

        pipeline = [
            {"$geoNear": near},
            {"$sort": {"distance": 1, "created_at": 1, "_id": 1}},
            {"$skip": query.offset},
            {"$limit": query.limit},
        ]
        cursor = self.col.aggregate(pipeline)
        docs = await bounded(cursor.to_list(length=query.limit), self.timeout, "geo_list")
        return [self._doc(d) for d in docs]
