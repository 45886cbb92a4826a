'''
Member-facing (v1) class listing and reservation shapes.
'''
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from ..database.db_enums import ReservationStatus


class InstructorPublic(BaseModel):
    id: UUID
    name: str


class ParticipantPublic(BaseModel):
    id: UUID
    name: str


class PublicClassRead(BaseModel):
    id: UUID
    title: str
    start_at: datetime
    end_at: datetime
    timezone: str
    instructor: Optional[InstructorPublic] = None
    capacity: int
    reserved_count: int
    user_status: ReservationStatus
    location: Optional[str] = None
    is_cancelled: bool


class PublicClassDetail(PublicClassRead):
    description: Optional[str] = None
    participants: list[ParticipantPublic] = []


class PublicClassListResponse(BaseModel):
    success: bool = True
    classes: list[PublicClassRead]


class PublicClassResponse(BaseModel):
    success: bool = True
    class_session: PublicClassDetail


class ReservationResult(BaseModel):
    success: bool = True
    reservation_id: Optional[UUID] = None
    status: str
    reserved_count: int
    user_status: ReservationStatus
