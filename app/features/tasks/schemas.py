"""Request schemas for guarded task and project updates"""
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class GuardedUpdateRequest(BaseModel):
    """
    Partial update in stored (camelCase) field names

    null values mean "leave unchanged"; fields listed in `clear` are removed
    from the document.
    """
    updates: Dict[str, Any] = Field(default_factory=dict)
    clear: List[str] = Field(default_factory=list)


class GuardedUpdateResponse(BaseModel):
    id: str
    written: Dict[str, Any]
