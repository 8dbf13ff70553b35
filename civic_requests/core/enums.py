from enum import Enum


class UserRole(str, Enum):
    admin = "admin"
    staff = "staff"
    citizen = "citizen"


class UserStatus(str, Enum):
    active = "active"
    disabled = "disabled"


class RequestStatus(str, Enum):
    pending = "pending"
    in_progress = "in-progress"
    resolved = "resolved"
    rejected = "rejected"


class RequestCategory(str, Enum):
    maintenance = "maintenance"
    repair = "repair"
    installation = "installation"
    inspection = "inspection"
    streetlight = "streetlight"
    other = "other"


class Priority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class AttachmentKind(str, Enum):
    image = "image"
    video = "video"
    document = "document"


class Department(str, Enum):
    water_works = "Water Works Association"
    electric = "Electric Association"
    gas = "Gas Association"
    parks = "Parks and Recreation"
    municipality = "Municipality"
    governorship = "Governorship"
    education = "Ministry of Education"
    sport = "Ministry of Sport"
    health = "Ministry of Health"
    other = "Other"
