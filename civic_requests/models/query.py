from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import Field

from civic_requests.core.enums import Department, Priority, RequestCategory, RequestStatus
from civic_requests.models.common import CivicBaseModel


class GeoNear(CivicBaseModel):
    longitude: float = Field(..., ge=-180, le=180)
    latitude: float = Field(..., ge=-90, le=90)
    max_distance_m: Optional[float] = Field(None, gt=0)

    @property
    def point(self) -> List[float]:
        return [self.longitude, self.latitude]


class RequestFilters(CivicBaseModel):
    status: Optional[RequestStatus] = None
    category: Optional[RequestCategory] = None
    department: Optional[Department] = None
    priority: Optional[Priority] = None
    geo_near: Optional[GeoNear] = None


class RequestQuery(CivicBaseModel):
    """Filters plus the ownership scope decided by the access layer."""

    filters: RequestFilters = Field(default_factory=RequestFilters)
    citizen_id: Optional[str] = None
    limit: int = Field(50, ge=1, le=200)
    offset: int = Field(0, ge=0)

    def to_mongo_filter(self) -> Dict[str, Any]:
        q: Dict[str, Any] = {}
        if self.citizen_id is not None:
            q["citizen_id"] = self.citizen_id
        f = self.filters
        if f.status:
            q["status"] = f.status.value
        if f.category:
            q["category"] = f.category.value
        if f.department:
            q["assigned_department"] = f.department.value
        if f.priority:
            q["priority"] = f.priority.value
        return q
