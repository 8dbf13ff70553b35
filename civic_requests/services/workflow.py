from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from civic_requests.core.enums import RequestStatus
from civic_requests.core.errors import FieldError, ValidationError

_ALL = [s for s in RequestStatus]

# every status may move to every status; tighten a row here to forbid a move
ALLOWED_TRANSITIONS: Dict[RequestStatus, List[RequestStatus]] = {
    RequestStatus.pending: _ALL,
    RequestStatus.in_progress: _ALL,
    RequestStatus.resolved: _ALL,
    RequestStatus.rejected: _ALL,
}

DEFAULT_HISTORY_COMMENT = "Status updated"


def get_allowed_next(state: RequestStatus) -> List[RequestStatus]:
    return ALLOWED_TRANSITIONS.get(RequestStatus(state), [])


def is_transition_allowed(current: RequestStatus, target: RequestStatus) -> bool:
    return RequestStatus(target) in get_allowed_next(current)


def validate_transition(current: RequestStatus, target: RequestStatus) -> None:
    if not is_transition_allowed(current, target):
        raise ValidationError(
            [FieldError("status", f"Invalid transition from {current.value} to {target.value}")]
        )


def synthetic_comment_text(status: RequestStatus, comment: str) -> str:
    return f"Status changed to {status.value}: {comment}"


def apply_transition_updates(
    target: RequestStatus,
    actor_id: str,
    comment: Optional[str],
    now: datetime,
) -> Dict[str, Dict[str, Any]]:
    """
    Build the single atomic update for a status change.

    Status, history entry, completion date and the synthetic comment are
    written together so status and the last history entry never disagree.
    """
    comment = comment or ""
    updates: Dict[str, Dict[str, Any]] = {
        "$set": {
            "status": target.value,
            "status_comment": comment,
            "updated_at": now,
        },
        "$push": {
            "status_history": {
                "status": target.value,
                "changed_by": actor_id,
                "comment": comment or DEFAULT_HISTORY_COMMENT,
                "timestamp": now,
            }
        },
        "$inc": {"version": 1},
    }
    if target == RequestStatus.resolved:
        updates["$set"]["actual_completion_date"] = now
    if comment.strip():
        updates["$push"]["comments"] = {
            "text": synthetic_comment_text(target, comment),
            "author_id": actor_id,
            "created_at": now,
        }
    return updates
