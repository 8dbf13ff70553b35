from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from pydantic import Field

from civic_requests.core.enums import (
    AttachmentKind,
    Department,
    Priority,
    RequestCategory,
    RequestStatus,
)
from civic_requests.core.errors import FieldError, ValidationError
from civic_requests.models.common import CivicBaseModel
from civic_requests.models.location import Location, validate_location

TITLE_MAX = 200
DESCRIPTION_MAX = 5000
COMMENT_MAX = 2000


class StatusHistoryEntry(CivicBaseModel):
    status: RequestStatus
    changed_by: str
    comment: Optional[str] = None
    timestamp: datetime


class Comment(CivicBaseModel):
    text: str
    author_id: str
    created_at: datetime


class Attachment(CivicBaseModel):
    kind: AttachmentKind
    storage_ref: str
    mime_type: Optional[str] = None
    original_name: Optional[str] = None
    uploaded_at: datetime


class ServiceRequest(CivicBaseModel):
    id: str
    title: str
    description: str
    category: RequestCategory
    status: RequestStatus = RequestStatus.pending
    priority: Priority = Priority.medium
    location: Location
    citizen_id: str
    assigned_department: Optional[Department] = None
    status_comment: str = ""
    status_history: List[StatusHistoryEntry] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)
    attachments: List[Attachment] = Field(default_factory=list)
    actual_completion_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    version: int = 0

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "ServiceRequest":
        data = dict(doc)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        data.pop("distance", None)
        return cls(**data)


class ListedRequest(ServiceRequest):
    distance_m: Optional[float] = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "ListedRequest":
        data = dict(doc)
        distance = data.pop("distance", None)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls(**data, distance_m=distance)


class RequestDraft(CivicBaseModel):
    """Validated create input, ready to become a document."""

    title: str
    description: str
    category: RequestCategory
    priority: Priority
    location: Location


# -------------------------
# Validation
# -------------------------

def _required_text(value: Any, field: str, max_len: int, errors: List[FieldError]) -> str:
    if not isinstance(value, str) or not value.strip():
        errors.append(FieldError(field, f"{field} is required"))
        return ""
    value = value.strip()
    if len(value) > max_len:
        errors.append(FieldError(field, f"{field} must be at most {max_len} characters"))
    return value


def _enum_value(enum_cls, value: Any, field: str, errors: List[FieldError]):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        errors.append(FieldError(field, f"{field} must be one of: {allowed}"))
        return None


def validate_create(
    title: Any,
    description: Any,
    category: Any,
    location: Any,
    priority: Any = None,
) -> RequestDraft:
    errors: List[FieldError] = []

    title = _required_text(title, "title", TITLE_MAX, errors)
    description = _required_text(description, "description", DESCRIPTION_MAX, errors)

    if category is None:
        errors.append(FieldError("category", "category is required"))
        category_v = None
    else:
        category_v = _enum_value(RequestCategory, category, "category", errors)

    priority_v = Priority.medium
    if priority is not None:
        priority_v = _enum_value(Priority, priority, "priority", errors)

    location_v = None
    try:
        location_v = validate_location(location)
    except ValidationError as exc:
        errors.extend(exc.errors)

    if errors:
        raise ValidationError(errors)

    return RequestDraft(
        title=title,
        description=description,
        category=category_v,
        priority=priority_v,
        location=location_v,
    )


def validate_comment_text(text: Any) -> str:
    errors: List[FieldError] = []
    text = _required_text(text, "text", COMMENT_MAX, errors)
    if errors:
        raise ValidationError(errors)
    return text


def validate_attachment(raw: Mapping[str, Any], uploaded_at: datetime) -> Attachment:
    errors: List[FieldError] = []

    kind = raw.get("kind")
    if kind is None:
        errors.append(FieldError("kind", "kind is required"))
    else:
        kind = _enum_value(AttachmentKind, kind, "kind", errors)

    storage_ref = raw.get("storage_ref")
    if not isinstance(storage_ref, str) or not storage_ref.strip():
        errors.append(FieldError("storage_ref", "storage_ref is required"))

    if errors:
        raise ValidationError(errors)

    return Attachment(
        kind=kind,
        storage_ref=storage_ref.strip(),
        mime_type=raw.get("mime_type"),
        original_name=raw.get("original_name"),
        uploaded_at=uploaded_at,
    )


def validate_status(value: Any) -> RequestStatus:
    errors: List[FieldError] = []
    status = _enum_value(RequestStatus, value, "status", errors)
    if errors:
        raise ValidationError(errors)
    return status


def validate_department(value: Any) -> Department:
    errors: List[FieldError] = []
    department = _enum_value(Department, value, "department", errors)
    if errors:
        raise ValidationError(errors)
    return department


def new_request_document(
    draft: RequestDraft, citizen_id: str, now: datetime
) -> Dict[str, Any]:
    """Initial document: pending, with the creation recorded in the history."""
    return {
        "title": draft.title,
        "description": draft.description,
        "category": draft.category.value,
        "status": RequestStatus.pending.value,
        "priority": draft.priority.value,
        "location": draft.location.model_dump(),
        "citizen_id": citizen_id,
        "assigned_department": None,
        "status_comment": "",
        "status_history": [
            {
                "status": RequestStatus.pending.value,
                "changed_by": citizen_id,
                "comment": "Request created",
                "timestamp": now,
            }
        ],
        "comments": [],
        "attachments": [],
        "actual_completion_date": None,
        "created_at": now,
        "updated_at": now,
        "version": 0,
    }
