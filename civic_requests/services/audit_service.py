import logging

from civic_requests.core.errors import CivicError
from civic_requests.core.security import Principal

logger = logging.getLogger(__name__)


def actor_of(principal: Principal) -> dict:
    return {"id": principal.id, "role": principal.role.value, "email": principal.email}


class AuditService:
    def __init__(self, repo):
        self.repo = repo

    async def list_logs(self, limit: int = 100):
        return await self.repo.list(limit)

    async def log_event(self, event: dict) -> bool:
        """
        Record an audit entry after the audited write has committed.

        A failed audit write is logged and reported as ``False``; it must not
        turn the committed operation into an error the caller would retry.
        """
        try:
            await self.repo.create(event)
        except CivicError:
            logger.warning(
                "audit write failed",
                exc_info=True,
                extra={"audit_type": event.get("type"), "entity": event.get("entity")},
            )
            return False
        return True
