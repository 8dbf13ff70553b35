from pydantic import BaseModel
from typing import Any, Dict, Optional

# bodies are loose; field errors come from the core validators


class CreateServiceRequestBody(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    location: Optional[Dict[str, Any]] = None


class CommentBody(BaseModel):
    text: Optional[str] = None


class StatusChangeBody(BaseModel):
    status: str
    comment: Optional[str] = None


class AssignBody(BaseModel):
    department: str

