'''

'''
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from .client import ClientSummary


class GroupWrite(BaseModel):
    """
    Create/edit payload of a client group: name, description and the
    COMPLETE desired member list. Built after the itemized validator passed.
    """
    name: str
    description: Optional[str] = None
    client_ids: list[str]


class GroupRead(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    created_at: datetime
    members: list[ClientSummary]
    member_ids: list[UUID]
    member_count: int
    active_member_count: int
    inactive_member_count: int

    model_config = ConfigDict(from_attributes=True)


class GroupChanges(BaseModel):
    name_changed: bool = False
    description_changed: bool = False
    added_client_ids: list[UUID]
    removed_client_ids: list[UUID]
    kept_client_ids: list[UUID]
    added_count: int
    removed_count: int
    kept_count: int


class GroupResponse(BaseModel):
    success: bool = True
    message: str
    group: GroupRead
    changes: Optional[GroupChanges] = None


class GroupListResponse(BaseModel):
    success: bool = True
    message: str = "Client groups retrieved successfully"
    count: int
    groups: list[GroupRead]


class GroupsSummaryResponse(BaseModel):
    success: bool = True
    total_groups: int
    active_groups: int
    empty_groups: int
    total_members: int
    active_members: int
    inactive_members: int
    average_members_per_group: float


class NameAvailabilityResponse(BaseModel):
    success: bool = True
    available: bool
    message: str


# --- Preview (read-only) ---

class PreviewFlags(BaseModel):
    name_will_change: bool
    description_will_change: bool
    members_will_change: bool


class PreviewMemberChanges(BaseModel):
    current: list[UUID]
    new: list[UUID]
    added: list[ClientSummary]
    removed: list[ClientSummary]
    kept: list[UUID]


class PreviewNewValues(BaseModel):
    name: str
    description: Optional[str] = None
    member_count: int


class GroupPreviewResponse(BaseModel):
    success: bool = True
    changes: PreviewFlags
    member_changes: PreviewMemberChanges
    new_values: PreviewNewValues
