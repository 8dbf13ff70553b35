from typing import List

from fastapi import APIRouter, Depends, Query, Request

from civic_requests.core.security import Principal, get_current_principal
from civic_requests.schemas.audit import AuditLogOut
from civic_requests.services.access import Action, authorize

router = APIRouter(prefix="/admin/audit", tags=["Admin - Audit"])


@router.get("", response_model=List[AuditLogOut])
async def list_audit_logs(
    request: Request,
    limit: int = Query(100, ge=1, le=500),
    principal: Principal = Depends(get_current_principal),
):
    authorize(principal, Action.read_audit)
    return await request.app.state.audit_service.list_logs(limit)
