from civic_requests.utils.mongo import bounded, serialize_mongo


class AuditRepository:
    def __init__(self, collection, timeout: float = 5.0):
        self.collection = collection
        self.timeout = timeout

    async def list(self, limit: int = 100):
        cursor = self.collection.find().sort("time", -1).limit(limit)
        docs = await bounded(cursor.to_list(length=limit), self.timeout, "audit_list")

        out = []
        for doc in docs:
            doc["id"] = str(doc.pop("_id"))
            out.append(doc)

        return [serialize_mongo(r) for r in out]

    async def create(self, data: dict):
        await bounded(self.collection.insert_one(data), self.timeout, "audit_insert")
