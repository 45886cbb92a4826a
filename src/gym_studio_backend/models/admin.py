'''

'''
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr


class AdminSummary(BaseModel):
    """Lean admin shape used for instructors, check-in and payment attribution."""
    id: UUID
    name: str
    email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AdminRead(BaseModel):
    id: UUID
    external_id: Optional[str] = None
    name: str
    email: EmailStr
    phone: Optional[str] = None
    is_active: bool
    super_admin: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AdminFlagsUpdate(BaseModel):
    """
    Body of PATCH /admins. At least one flag must be present,
    which the service enforces so the caller gets a specific message.
    """
    id: UUID
    is_active: Optional[bool] = None
    super_admin: Optional[bool] = None


class AdminListResponse(BaseModel):
    success: bool = True
    admins: list[AdminRead]
    count: int


class AdminResponse(BaseModel):
    success: bool = True
    message: str
    admin: AdminRead
