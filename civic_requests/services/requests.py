from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional

from civic_requests.core.errors import AuthorizationError, ConflictError, NotFoundError
from civic_requests.core.security import Principal
from civic_requests.models.common import utcnow
from civic_requests.models.query import RequestFilters, RequestQuery
from civic_requests.models.service_requests import (
    ListedRequest,
    ServiceRequest,
    new_request_document,
    validate_attachment,
    validate_comment_text,
    validate_create,
    validate_department,
    validate_status,
)
from civic_requests.services.access import (
    STAFF_ACTIONS,
    Action,
    authorize,
    can,
    is_ownership_denial,
)
from civic_requests.services.audit_service import AuditService, actor_of
from civic_requests.services.notifications import Notifier, StatusChangedEvent
from civic_requests.services.workflow import apply_transition_updates, validate_transition

logger = logging.getLogger(__name__)


class RequestService:
    """
    Service request operations.

    Each call authorizes the principal, validates input, then performs one
    atomic repository write. Errors are raised as the typed errors in
    ``civic_requests.core.errors``.
    """

    def __init__(
        self,
        repo,
        audit: AuditService,
        notifier: Notifier,
        hide_forbidden: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repo = repo
        self.audit = audit
        self.notifier = notifier
        self.hide_forbidden = hide_forbidden
        self.clock = clock

    # ------------------------------------------------------------------
    # Loading + authorization
    # ------------------------------------------------------------------
    async def _load(self, principal: Optional[Principal], request_id: str, action: Action) -> ServiceRequest:
        if principal is None:
            raise AuthorizationError()
        if action in STAFF_ACTIONS:
            # role-only checks run before the lookup so denials reveal nothing
            authorize(principal, action)

        doc = await self.repo.find_by_id(request_id)
        if doc is None:
            raise NotFoundError(request_id)

        request = ServiceRequest.from_document(doc)
        if not can(principal, action, request):
            if self.hide_forbidden and is_ownership_denial(principal, action):
                raise NotFoundError(request_id)
            raise AuthorizationError()
        return request

    # ------------------------------------------------------------------
    # Create (status = pending)
    # ------------------------------------------------------------------
    async def create(
        self,
        principal: Optional[Principal],
        title: Any,
        description: Any,
        category: Any,
        location: Any,
        priority: Any = None,
    ) -> ServiceRequest:
        authorize(principal, Action.create)
        draft = validate_create(title, description, category, location, priority)

        now = self.clock()
        doc = await self.repo.insert(new_request_document(draft, principal.id, now))
        request = ServiceRequest.from_document(doc)

        await self.audit.log_event({
            "time": now,
            "type": "request.create",
            "actor": actor_of(principal),
            "entity": {"type": "service_request", "id": request.id},
            "message": f"Service request created: {request.title}",
            "meta": {
                "category": request.category.value,
                "priority": request.priority.value,
                "coordinates": request.location.coordinates,
            },
        })
        logger.info("service request created", extra={"service_request_id": request.id})
        return request

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------
    async def get(self, principal: Optional[Principal], request_id: str) -> ServiceRequest:
        return await self._load(principal, request_id, Action.read)

    async def list(
        self,
        principal: Optional[Principal],
        filters: Optional[RequestFilters] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ListedRequest]:
        if principal is None:
            raise AuthorizationError()

        query = RequestQuery(filters=filters or RequestFilters(), limit=limit, offset=offset)
        if not can(principal, Action.list_all):
            # citizens only ever see their own requests
            query.citizen_id = principal.id

        docs = await self.repo.list_requests(query)
        return [ListedRequest.from_document(d) for d in docs]

    # ------------------------------------------------------------------
    # Appends
    # ------------------------------------------------------------------
    async def append_comment(self, principal: Optional[Principal], request_id: str, text: Any) -> ServiceRequest:
        text = validate_comment_text(text)
        await self._load(principal, request_id, Action.comment)

        now = self.clock()
        comment = {"text": text, "author_id": principal.id, "created_at": now}
        doc = await self.repo.push(request_id, "comments", comment, now)
        if doc is None:
            raise NotFoundError(request_id)
        return ServiceRequest.from_document(doc)

    async def append_attachment(
        self, principal: Optional[Principal], request_id: str, attachment: Mapping[str, Any]
    ) -> ServiceRequest:
        now = self.clock()
        item = validate_attachment(attachment, now)
        await self._load(principal, request_id, Action.attach)

        stored = dict(item.model_dump(), kind=item.kind.value)
        doc = await self.repo.push(request_id, "attachments", stored, now)
        if doc is None:
            raise NotFoundError(request_id)
        return ServiceRequest.from_document(doc)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def transition(
        self,
        principal: Optional[Principal],
        request_id: str,
        new_status: Any,
        comment: Optional[str] = None,
    ) -> ServiceRequest:
        authorize(principal, Action.change_status)
        target = validate_status(new_status)
        current = await self._load(principal, request_id, Action.change_status)
        validate_transition(current.status, target)

        now = self.clock()
        updates = apply_transition_updates(target, principal.id, comment, now)
        doc = await self.repo.update_versioned(request_id, current.version, updates)
        if doc is None:
            await self._raise_missing_or_conflict(request_id)

        updated = ServiceRequest.from_document(doc)
        self.notifier.publish_nowait(StatusChangedEvent(request_id=request_id, new_status=target.value))

        await self.audit.log_event({
            "time": now,
            "type": "request.status",
            "actor": actor_of(principal),
            "entity": {"type": "service_request", "id": request_id},
            "message": f"Status changed from {current.status.value} to {target.value}",
            "meta": {"from": current.status.value, "to": target.value, "comment": comment or ""},
        })
        logger.info(
            "service request status changed",
            extra={"service_request_id": request_id, "from": current.status.value, "to": target.value},
        )
        return updated

    async def assign(self, principal: Optional[Principal], request_id: str, department: Any) -> ServiceRequest:
        authorize(principal, Action.assign)
        department = validate_department(department)
        current = await self._load(principal, request_id, Action.assign)

        now = self.clock()
        updates = {
            "$set": {"assigned_department": department.value, "updated_at": now},
            "$inc": {"version": 1},
        }
        doc = await self.repo.update_versioned(request_id, current.version, updates)
        if doc is None:
            await self._raise_missing_or_conflict(request_id)

        await self.audit.log_event({
            "time": now,
            "type": "request.assign",
            "actor": actor_of(principal),
            "entity": {"type": "service_request", "id": request_id},
            "message": f"Assigned to {department.value}",
            "meta": {
                "from": current.assigned_department.value if current.assigned_department else None,
                "to": department.value,
            },
        })
        logger.info("service request assigned", extra={"service_request_id": request_id, "department": department.value})
        return ServiceRequest.from_document(doc)

    async def _raise_missing_or_conflict(self, request_id: str) -> None:
        if await self.repo.find_by_id(request_id) is None:
            raise NotFoundError(request_id)
        raise ConflictError()
