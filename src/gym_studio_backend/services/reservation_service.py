'''
Member-facing class browsing and self-service reservations.
A reservation is an attendance row without a recording admin.
'''
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import ReservationStatus
from ..models import reservation as reservation_models
from ..common.config import settings
from ..common.logger import log


class ReservationService:
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    # --- Internal Helpers ---

    async def _get_class_internal(self, class_id: UUID) -> db_models.ClassSessions:
        stmt = select(db_models.ClassSessions).options(
            selectinload(db_models.ClassSessions.instructor),
            selectinload(db_models.ClassSessions.attendance_logs).selectinload(db_models.AttendanceLogs.client)
        ).filter(db_models.ClassSessions.id == class_id).execution_options(populate_existing=True)
        class_session = (await self.db.execute(stmt)).scalars().first()
        if not class_session:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
        return class_session

    async def _reserved_count(self, class_id: UUID) -> int:
        stmt = select(func.count(db_models.AttendanceLogs.id)).filter(db_models.AttendanceLogs.session_id == class_id)
        return (await self.db.execute(stmt)).scalar_one()

    async def _find_reservation(self, class_id: UUID, client_id: UUID) -> Optional[db_models.AttendanceLogs]:
        stmt = select(db_models.AttendanceLogs).filter(
            db_models.AttendanceLogs.session_id == class_id,
            db_models.AttendanceLogs.client_id == client_id
        )
        return (await self.db.execute(stmt)).scalars().first()

    @staticmethod
    def _to_public(class_session: db_models.ClassSessions, client_id: Optional[UUID]) -> dict:
        reserved = client_id is not None and any(
            entry.client_id == client_id for entry in class_session.attendance_logs
        )
        instructor = class_session.instructor
        return dict(
            id=class_session.id,
            title=class_session.title,
            start_at=class_session.start_time,
            end_at=class_session.end_time,
            timezone=settings.STUDIO_TIMEZONE,
            instructor=reservation_models.InstructorPublic(id=instructor.id, name=instructor.name) if instructor else None,
            capacity=class_session.capacity,
            reserved_count=len(class_session.attendance_logs),
            user_status=ReservationStatus.RESERVED if reserved else ReservationStatus.NONE,
            location=class_session.location,
            is_cancelled=class_session.is_cancelled
        )

    @staticmethod
    def _ensure_before_start(class_session: db_models.ClassSessions, now: datetime, detail: str):
        if now >= class_session.start_time:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)

    # --- Public Methods ---

    async def list_classes(
        self,
        range_from: datetime,
        range_to: datetime,
        client_id: Optional[UUID] = None
    ) -> reservation_models.PublicClassListResponse:
        """Sessions overlapping [range_from, range_to): start < to and end > from."""
        stmt = select(db_models.ClassSessions).options(
            selectinload(db_models.ClassSessions.instructor),
            selectinload(db_models.ClassSessions.attendance_logs)
        ).filter(
            db_models.ClassSessions.start_time < range_to.replace(tzinfo=None),
            db_models.ClassSessions.end_time > range_from.replace(tzinfo=None)
        ).order_by(db_models.ClassSessions.start_time).execution_options(populate_existing=True)
        sessions = (await self.db.execute(stmt)).scalars().all()
        return reservation_models.PublicClassListResponse(
            classes=[reservation_models.PublicClassRead(**self._to_public(s, client_id)) for s in sessions]
        )

    async def get_class(self, class_id: UUID, client_id: Optional[UUID] = None) -> reservation_models.PublicClassResponse:
        class_session = await self._get_class_internal(class_id)
        detail = reservation_models.PublicClassDetail(
            **self._to_public(class_session, client_id),
            description=class_session.description,
            participants=[
                reservation_models.ParticipantPublic(id=entry.client.id, name=entry.client.name)
                for entry in class_session.attendance_logs
            ]
        )
        return reservation_models.PublicClassResponse(class_session=detail)

    async def reserve(
        self,
        class_id: UUID,
        client: db_models.Clients,
        now: Optional[datetime] = None
    ) -> reservation_models.ReservationResult:
        """
        Reserves a spot. Idempotent for an existing reservation; 422 once the
        class started; 409 when the class is full.
        """
        now = now or datetime.now()
        log.info(f"Client {client.id} reserving class {class_id}.")
        class_session = await self._get_class_internal(class_id)
        self._ensure_before_start(class_session, now, "Reservations closed for this class")

        existing = await self._find_reservation(class_id, client.id)
        if existing is None:
            if len(class_session.attendance_logs) >= class_session.capacity:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Class is full")
            existing = db_models.AttendanceLogs(session_id=class_id, client_id=client.id)
            self.db.add(existing)
            await self.db.flush()

        return reservation_models.ReservationResult(
            reservation_id=existing.id,
            status="reserved",
            reserved_count=await self._reserved_count(class_id),
            user_status=ReservationStatus.RESERVED
        )

    async def _cancel(self, reservation: db_models.AttendanceLogs, now: datetime) -> reservation_models.ReservationResult:
        class_session = await self.db.get(db_models.ClassSessions, reservation.session_id)
        if class_session is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
        self._ensure_before_start(class_session, now, "Cancellation cutoff has passed")

        await self.db.delete(reservation)
        await self.db.flush()
        return reservation_models.ReservationResult(
            status="cancelled",
            reserved_count=await self._reserved_count(class_session.id),
            user_status=ReservationStatus.NONE
        )

    async def cancel_current(
        self,
        class_id: UUID,
        client: db_models.Clients,
        now: Optional[datetime] = None
    ) -> reservation_models.ReservationResult:
        log.info(f"Client {client.id} cancelling reservation for class {class_id}.")
        reservation = await self._find_reservation(class_id, client.id)
        if reservation is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reservation not found")
        return await self._cancel(reservation, now or datetime.now())

    async def cancel_by_id(
        self,
        reservation_id: UUID,
        client: db_models.Clients,
        now: Optional[datetime] = None
    ) -> reservation_models.ReservationResult:
        reservation = await self.db.get(db_models.AttendanceLogs, reservation_id)
        if reservation is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reservation not found")
        if reservation.client_id != client.id:
            log.warning(f"SECURITY: Client {client.id} tried to cancel reservation {reservation_id}.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to cancel this reservation."
            )
        return await self._cancel(reservation, now or datetime.now())
