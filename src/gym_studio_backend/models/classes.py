'''

'''
import datetime
from typing import Optional, Literal, Annotated, Union, Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, TypeAdapter

from ..database.db_enums import ClassCreateType, WeekDay
from .admin import AdminSummary
from .client import ClientSummary

# --- 1. API Input Models (for POST/PUT/PATCH) ---

class ClassTemplate(BaseModel):
    """Fields shared by single and recurring class creation."""
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=100)
    capacity: int = Field(..., gt=0, le=1000)
    # 'HH:MM' time of day, or a full ISO datetime
    start_time: str
    end_time: str
    is_cancelled: bool = False


class SingleClassInput(ClassTemplate):
    """
    Validates the request body for creating ONE class session.
    """
    # 1. The 'discriminator' field. Must be a Literal.
    type: Literal[ClassCreateType.SINGLE.value]

    # 2. Required fields for this type
    date: datetime.date


class RecurringClassInput(ClassTemplate):
    """
    Validates the request body for expanding a weekday pattern over a date range.
    An empty `days` list or start_date after end_date creates no sessions.
    """
    # 1. The 'discriminator' field. Must be a Literal.
    type: Literal[ClassCreateType.RECURRING.value]

    # 2. Required fields for this type
    start_date: datetime.date
    end_date: datetime.date
    days: list[WeekDay] = []


ClassCreateHint = Annotated[
    Union[SingleClassInput, RecurringClassInput],
    Field(discriminator='type')
]

# The TypeAdapter the service uses to validate the raw POST body.
ClassCreateValidator = TypeAdapter(ClassCreateHint)


class ClassUpdateWithAttendees(BaseModel):
    """
    Full replace of a class session, including its complete attendee roster.
    Only built after the itemized validator accepted the raw payload.
    """
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    capacity: int
    date: datetime.date
    start_time: str
    end_time: str
    is_cancelled: bool
    attendee_ids: Optional[list[str]] = None


class ClassPatch(BaseModel):
    """
    Partial update of a class session's scalar fields (PATCH).
    Changing only `date` moves the existing times onto the new date.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=100)
    capacity: Optional[int] = Field(None, gt=0, le=1000)
    date: Optional[datetime.date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_cancelled: Optional[bool] = None


class CheckInRequest(BaseModel):
    client_id: UUID


# --- 2. API Output Models (for GET) ---

class AttendeeRead(BaseModel):
    id: UUID
    client_id: UUID
    check_in_time: datetime.datetime
    client: ClientSummary
    checked_in_by: Optional[AdminSummary] = None

    model_config = ConfigDict(from_attributes=True)


class ClassRead(BaseModel):
    """
    A class session with its instructor and roster.
    Built from the ClassSessions ORM object with 'instructor' and
    'attendance_logs' (plus their client/checked_in_by) eager-loaded.
    """
    id: UUID
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    capacity: int
    date: datetime.date
    start_time: datetime.datetime
    end_time: datetime.datetime
    is_cancelled: bool
    instructor: Optional[AdminSummary] = None
    attendees: list[AttendeeRead] = Field(default_factory=list, validation_alias='attendance_logs')

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    @computed_field
    @property
    def attendee_count(self) -> int:
        return len(self.attendees)

    @computed_field
    @property
    def available_spots(self) -> int:
        return max(self.capacity - len(self.attendees), 0)


class ClassChangeSummary(BaseModel):
    class_info_updated: bool = True
    attendees_updated: bool
    added_count: int
    removed_count: int
    kept_count: int
    total_attendees: int


class ClassResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    class_session: ClassRead


class ClassUpdateResponse(BaseModel):
    success: bool = True
    message: str
    class_session: ClassRead
    changes: ClassChangeSummary
    updated_by: AdminSummary


class ClassCreateResponse(BaseModel):
    success: bool = True
    message: str
    count: int
    classes: list[ClassRead]


class ClassRangeResponse(BaseModel):
    success: bool = True
    start_date: datetime.date
    end_date: datetime.date
    days_in_range: int
    count: int
    classes: list[ClassRead]
    grouped_classes: dict[str, list[ClassRead]]


class WeekClassesResponse(BaseModel):
    success: bool = True
    week_offset: int
    week_start: datetime.date
    week_end: datetime.date
    count: int
    classes: list[ClassRead]
    grouped_classes: dict[str, list[ClassRead]]


class CheckInResponse(BaseModel):
    success: bool = True
    message: str
    attendee: AttendeeRead
    attendee_count: int
