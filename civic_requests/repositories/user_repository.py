from typing import Optional

from civic_requests.utils.mongo import bounded, parse_oid


class UserRepository:
    def __init__(self, col, timeout: float = 5.0):
        self.col = col
        self.timeout = timeout

    async def get_by_id(self, user_id: str) -> Optional[dict]:
        oid = parse_oid(user_id)
        if oid is None:
            return None

        u = await bounded(
            self.col.find_one(
                {"_id": oid, "deleted": {"$ne": True}},
                {"email": 1, "contacts.email": 1, "role": 1, "status": 1},
            ),
            self.timeout,
            "user_lookup",
        )
        if not u:
            return None

        contacts = u.get("contacts") or {}
        return {
            "id": str(u["_id"]),
            "email": contacts.get("email") or u.get("email") or "",
            "role": u.get("role"),
            "status": u.get("status", "active"),
        }
