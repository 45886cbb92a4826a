'''

'''
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .admin import AdminSummary


class ClientSummary(BaseModel):
    """Lean client shape used inside rosters, groups and payment lists."""
    id: UUID
    name: str
    username: str
    phone: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class ClientCreate(BaseModel):
    """
    Validates the JSON payload when CREATING a new client.
    The username is trimmed and lower-cased before it is stored.
    """
    name: str = Field(..., min_length=1, max_length=100)
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=8)
    phone: Optional[str] = Field(None, max_length=50)
    is_active: bool = False

    @field_validator("name", "username")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()


class ClientUpdate(BaseModel):
    """
    Partial update. An empty password means "keep the current one".
    """
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    password: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = None


class ClientRead(ClientSummary):
    created_at: datetime


class ClientPaymentBrief(BaseModel):
    id: UUID
    amount: Decimal
    status: str
    payment_date: datetime
    valid_until: datetime
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ClientAttendanceBrief(BaseModel):
    id: UUID
    session_id: UUID
    session_title: str
    session_date: datetime
    instructor_name: Optional[str] = None
    check_in_time: datetime
    checked_in_by: Optional[AdminSummary] = None


class ClientGroupBrief(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ClientDetailRead(ClientRead):
    recent_payments: list[ClientPaymentBrief] = []
    recent_attendance: list[ClientAttendanceBrief] = []
    groups: list[ClientGroupBrief] = []


class ClientResponse(BaseModel):
    success: bool = True
    message: str
    client: ClientDetailRead | ClientRead


class ClientListResponse(BaseModel):
    success: bool = True
    clients: list[ClientRead]
    total_count: int
    has_more: bool
