# civic_requests/api/service_requests.py
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile

from civic_requests.core.enums import Department, Priority, RequestCategory, RequestStatus
from civic_requests.core.errors import CivicError, ValidationError
from civic_requests.core.security import Principal, get_current_principal
from civic_requests.models.query import GeoNear, RequestFilters
from civic_requests.models.service_requests import ListedRequest, ServiceRequest
from civic_requests.schemas.service_request import (
    AssignBody,
    CommentBody,
    CreateServiceRequestBody,
    StatusChangeBody,
)
from civic_requests.services.file_storage import LocalFileStorage, kind_for_mime
from civic_requests.services.requests import RequestService

router = APIRouter(prefix="/requests", tags=["Service Requests"])


def get_request_service(request: Request) -> RequestService:
    return request.app.state.request_service


def get_file_storage(request: Request) -> LocalFileStorage:
    return request.app.state.file_storage


# =========================
# Create Service Request
# =========================
@router.post("", response_model=ServiceRequest, status_code=201)
async def create_service_request(
    body: CreateServiceRequestBody,
    principal: Principal = Depends(get_current_principal),
    service: RequestService = Depends(get_request_service),
):
    return await service.create(
        principal,
        title=body.title,
        description=body.description,
        category=body.category,
        location=body.location,
        priority=body.priority,
    )


# =========================
# List Requests
# =========================
@router.get("", response_model=List[ListedRequest])
async def list_service_requests(
    status: Optional[RequestStatus] = Query(None),
    category: Optional[RequestCategory] = Query(None),
    department: Optional[Department] = Query(None),
    priority: Optional[Priority] = Query(None),
    near_lng: Optional[float] = Query(None, ge=-180, le=180),
    near_lat: Optional[float] = Query(None, ge=-90, le=90),
    max_distance_m: Optional[float] = Query(None, gt=0),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_current_principal),
    service: RequestService = Depends(get_request_service),
):
    geo_near = None
    if near_lng is not None or near_lat is not None:
        if near_lng is None or near_lat is None:
            raise ValidationError.single("near", "near_lng and near_lat must be given together")
        geo_near = GeoNear(longitude=near_lng, latitude=near_lat, max_distance_m=max_distance_m)

    filters = RequestFilters(
        status=status,
        category=category,
        department=department,
        priority=priority,
        geo_near=geo_near,
    )
    return await service.list(principal, filters, limit=limit, offset=offset)


@router.get("/{request_id}", response_model=ServiceRequest)
async def get_service_request(
    request_id: str,
    principal: Principal = Depends(get_current_principal),
    service: RequestService = Depends(get_request_service),
):
    return await service.get(principal, request_id)


# =========================
# Comments + Attachments
# =========================
@router.post("/{request_id}/comments", response_model=ServiceRequest, status_code=201)
async def add_comment(
    request_id: str,
    body: CommentBody,
    principal: Principal = Depends(get_current_principal),
    service: RequestService = Depends(get_request_service),
):
    return await service.append_comment(principal, request_id, body.text)


@router.post("/{request_id}/attachments", response_model=ServiceRequest, status_code=201)
async def upload_attachment(
    request_id: str,
    file: UploadFile = File(...),
    principal: Principal = Depends(get_current_principal),
    service: RequestService = Depends(get_request_service),
    storage: LocalFileStorage = Depends(get_file_storage),
):
    # authorize before anything touches the disk
    await service.get(principal, request_id)

    # read at most one byte past the limit
    data = await file.read(storage.max_bytes + 1)
    stored = storage.save(data, file.content_type, file.filename)
    try:
        return await service.append_attachment(
            principal,
            request_id,
            {
                "kind": kind_for_mime(stored.mime_type).value,
                "storage_ref": stored.storage_ref,
                "mime_type": stored.mime_type,
                "original_name": stored.original_name,
            },
        )
    except CivicError:
        storage.delete(stored.storage_ref)
        raise


# =========================
# Staff: status + department
# =========================
@router.patch("/{request_id}/status", response_model=ServiceRequest)
async def change_status(
    request_id: str,
    body: StatusChangeBody,
    principal: Principal = Depends(get_current_principal),
    service: RequestService = Depends(get_request_service),
):
    return await service.transition(principal, request_id, body.status, body.comment)


@router.patch("/{request_id}/assign", response_model=ServiceRequest)
async def assign_department(
    request_id: str,
    body: AssignBody,
    principal: Principal = Depends(get_current_principal),
    service: RequestService = Depends(get_request_service),
):
    return await service.assign(principal, request_id, body.department)
