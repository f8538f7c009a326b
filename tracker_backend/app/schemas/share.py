"""
Share map Pydantic schemas.

A share map tells, per user visible to the caller, whether the user is
an owner of a device or geo-fence.
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class ShareEntry(BaseModel):
    user_id: int
    login: Optional[str] = None
    shared: bool


class ShareResponse(BaseModel):
    resource_id: int
    entries: List[ShareEntry]


class ShareUpdate(BaseModel):
    """
    Partial share map.

    Users left out keep their current ownership.
    """
    entries: List[ShareEntry] = Field(default_factory=list)


class ShareUpdateResponse(BaseModel):
    resource_id: int
    deleted: bool = Field(..., description="True if the edit removed every owner and the resource was purged")
