from __future__ import annotations

import math
from typing import Any, List, Mapping, Optional

from pydantic import AliasChoices, Field

from civic_requests.core.errors import FieldError, ValidationError
from civic_requests.models.common import CivicBaseModel

# radius MongoDB uses for 2dsphere distance calculations
EARTH_RADIUS_M = 6378100.0

ADDRESS_FIELDS = ("street", "city", "state", "zip_code")


class Address(CivicBaseModel):
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = Field("", validation_alias=AliasChoices("zip_code", "zipCode"))


class Location(CivicBaseModel):
    type: str = Field("Point", pattern="^Point$")
    # GeoJSON order: [longitude, latitude]
    coordinates: List[float] = Field(default_factory=lambda: [0.0, 0.0])
    address: Address = Field(default_factory=Address)


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def coordinate_errors(lon: Any, lat: Any, prefix: str = "location.coordinates") -> List[FieldError]:
    errors: List[FieldError] = []
    if not _is_number(lon) or not -180 <= lon <= 180:
        errors.append(FieldError(prefix, "longitude must be a number between -180 and 180"))
    if not _is_number(lat) or not -90 <= lat <= 90:
        errors.append(FieldError(prefix, "latitude must be a number between -90 and 90"))
    return errors


def validate_location(raw: Optional[Mapping[str, Any]]) -> Location:
    """
    Validate and normalize a location payload.

    Accepts ``{"coordinates": [lon, lat], "address": {...}}`` where the address
    may use ``zip_code`` or ``zipCode``. Address strings are trimmed and must be
    non-empty. Coordinates are optional and default to ``[0, 0]``.
    """
    if raw is None or not isinstance(raw, Mapping):
        raise ValidationError.single("location", "location is required")

    errors: List[FieldError] = []

    address_in = raw.get("address")
    if not isinstance(address_in, Mapping):
        address_in = {}
        errors.append(FieldError("location.address", "address is required"))

    address = {}
    for name in ADDRESS_FIELDS:
        value = address_in.get(name)
        if value is None and name == "zip_code":
            value = address_in.get("zipCode")
        if not isinstance(value, str) or not value.strip():
            if isinstance(raw.get("address"), Mapping):
                errors.append(FieldError(f"location.address.{name}", f"{name} is required"))
            address[name] = ""
            continue
        address[name] = value.strip()

    coordinates = raw.get("coordinates")
    if coordinates is None:
        coordinates = [0.0, 0.0]
    elif not isinstance(coordinates, (list, tuple)) or len(coordinates) != 2:
        errors.append(FieldError("location.coordinates", "coordinates must be a [longitude, latitude] pair"))
        coordinates = [0.0, 0.0]
    else:
        errors.extend(coordinate_errors(coordinates[0], coordinates[1]))

    if errors:
        raise ValidationError(errors)

    return Location(
        coordinates=[float(coordinates[0]), float(coordinates[1])],
        address=Address(**address),
    )


def distance_m(a: List[float], b: List[float]) -> float:
    """Great-circle distance in metres between two [lon, lat] points."""
    lon1, lat1 = math.radians(a[0]), math.radians(a[1])
    lon2, lat2 = math.radians(b[0]), math.radians(b[1])
    h = (
        math.sin((lat2 - lat1) / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin((lon2 - lon1) / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))
