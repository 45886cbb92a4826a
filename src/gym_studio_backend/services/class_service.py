'''

'''
from collections import defaultdict
from datetime import date, datetime
from typing import Annotated, Any, Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from pydantic import ValidationError

from ..database.engine import get_db_session
from ..database import models as db_models
from ..models import classes as class_models
from ..models.admin import AdminSummary
from ..core import dates as date_utils
from ..core.validators import validate_class_update_data
from ..core.reconciliation import MembershipDiff, dedupe_ids
from ..common.logger import log
from .client_service import ClientService


class ClassService:
    """
    Service for class sessions: creation (single or recurring), scheduling
    queries, partial edits, full replace with roster reconciliation and check-ins.
    """
    PATCH_NULLABLE_FIELDS = frozenset({"description", "location"})

    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        client_service: Annotated[ClientService, Depends(ClientService)]
    ):
        self.db = db
        self.client_service = client_service

    # --- Internal Helpers ---

    @staticmethod
    def _load_options():
        return (
            selectinload(db_models.ClassSessions.instructor),
            selectinload(db_models.ClassSessions.attendance_logs).selectinload(db_models.AttendanceLogs.client),
            selectinload(db_models.ClassSessions.attendance_logs).selectinload(db_models.AttendanceLogs.checked_in_by),
        )

    async def _get_class_by_id_internal(self, class_id: UUID, refresh: bool = False) -> db_models.ClassSessions:
        """
        Fetches one class with instructor and roster loaded. Raises 404 if not found.
        `refresh` overwrites already-loaded state (used after roster writes).
        """
        stmt = select(db_models.ClassSessions).options(
            *self._load_options()
        ).filter(db_models.ClassSessions.id == class_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)

        result = await self.db.execute(stmt)
        class_session = result.scalars().first()
        if not class_session:
            log.warning(f"Tried to fetch non-existing class session: {class_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class session not found")
        return class_session

    @staticmethod
    def _resolve_times(day: date, start_value: Any, end_value: Any) -> tuple[datetime, datetime]:
        """
        Builds start/end datetimes for `day`. 400 when unparseable or not ordered.
        A bare end time lands on the start's day.
        """
        try:
            start_dt = date_utils.combine_date_and_time(day, start_value)
            end_dt = date_utils.combine_date_and_time(start_dt.date(), end_value)
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid date/time format")
        if start_dt >= end_dt:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="End time must be after start time")
        return start_dt, end_dt

    @staticmethod
    def _distinct_id_count(raw_ids: list[str]) -> int:
        """Counts requested ids with every spelling of one UUID counted once."""
        keys = set()
        for raw in raw_ids:
            try:
                keys.add(UUID(str(raw)))
            except ValueError:
                keys.add(raw)
        return len(keys)

    @staticmethod
    def _group_by_date(classes: list[class_models.ClassRead]) -> dict[str, list[class_models.ClassRead]]:
        grouped: dict[str, list[class_models.ClassRead]] = defaultdict(list)
        for item in classes:
            grouped[item.date.isoformat()].append(item)
        return dict(grouped)

    async def _list_between(self, start: datetime, end: datetime) -> list[class_models.ClassRead]:
        stmt = select(db_models.ClassSessions).options(
            *self._load_options()
        ).filter(
            db_models.ClassSessions.start_time >= start,
            db_models.ClassSessions.start_time <= end
        ).order_by(db_models.ClassSessions.date, db_models.ClassSessions.start_time)
        result = await self.db.execute(stmt)
        return [class_models.ClassRead.model_validate(c) for c in result.scalars().all()]

    # --- Creation ---

    async def create_classes(self, class_data: dict, current_admin: db_models.Admins) -> class_models.ClassCreateResponse:
        """
        Creates one class (type='single') or a weekly series (type='recurring').
        """
        log.info(f"Admin {current_admin.id} attempting to create class(es).")
        try:
            input_model = class_models.ClassCreateValidator.validate_python(class_data)

            if isinstance(input_model, class_models.SingleClassInput):
                return await self.create_single_class(input_model, current_admin)
            return await self.create_recurring_classes(input_model, current_admin)

        except (ValidationError, ValueError) as e:
            log.error(f"Validation failed for creating class. Data: {class_data}, Error: {e}")
            raise
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error in create_classes: {e}", exc_info=True)
            raise

    async def create_single_class(
        self,
        data: class_models.SingleClassInput,
        current_admin: db_models.Admins
    ) -> class_models.ClassCreateResponse:
        start_dt, end_dt = self._resolve_times(data.date, data.start_time, data.end_time)

        new_class = db_models.ClassSessions(
            title=data.title.strip(),
            description=data.description,
            location=data.location,
            capacity=data.capacity,
            date=start_dt.date(),
            start_time=start_dt,
            end_time=end_dt,
            is_cancelled=data.is_cancelled,
            instructor_id=current_admin.id
        )
        self.db.add(new_class)
        await self.db.flush()

        created = await self._get_class_by_id_internal(new_class.id, refresh=True)
        log.info(f"Created class session {created.id} on {created.date}.")
        return class_models.ClassCreateResponse(
            message="Class created successfully",
            count=1,
            classes=[class_models.ClassRead.model_validate(created)]
        )

    async def create_recurring_classes(
        self,
        data: class_models.RecurringClassInput,
        current_admin: db_models.Admins
    ) -> class_models.ClassCreateResponse:
        """
        Materializes one independent session per matching date in
        [start_date, end_date]. No selected days, or start after end, creates nothing.
        """
        try:
            start_of_day = date_utils.parse_time_of_day(data.start_time)
            end_of_day = date_utils.parse_time_of_day(data.end_time)
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid date/time format")
        if start_of_day >= end_of_day:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="End time must be after start time")

        dates = date_utils.expand_recurring_dates(
            [day.index for day in data.days], data.start_date, data.end_date
        )

        new_classes = [
            db_models.ClassSessions(
                title=data.title.strip(),
                description=data.description,
                location=data.location,
                capacity=data.capacity,
                date=day,
                start_time=datetime.combine(day, start_of_day),
                end_time=datetime.combine(day, end_of_day),
                is_cancelled=data.is_cancelled,
                instructor_id=current_admin.id
            )
            for day in dates
        ]
        self.db.add_all(new_classes)
        await self.db.flush()

        created: list[class_models.ClassRead] = []
        if new_classes:
            stmt = select(db_models.ClassSessions).options(*self._load_options()).filter(
                db_models.ClassSessions.id.in_([c.id for c in new_classes])
            ).order_by(db_models.ClassSessions.start_time).execution_options(populate_existing=True)
            result = await self.db.execute(stmt)
            created = [class_models.ClassRead.model_validate(c) for c in result.scalars().all()]

        log.info(f"Created {len(created)} recurring sessions of '{data.title}'.")
        return class_models.ClassCreateResponse(
            message=f"{len(created)} classes created successfully",
            count=len(created),
            classes=created
        )

    # --- Reads ---

    async def get_class_by_id(self, class_id: UUID) -> class_models.ClassResponse:
        class_session = await self._get_class_by_id_internal(class_id)
        return class_models.ClassResponse(class_session=class_models.ClassRead.model_validate(class_session))

    async def get_classes_by_date_range(self, start_date: str, end_date: str) -> class_models.ClassRangeResponse:
        """
        Classes starting within [start_date 00:00:00.000, end_date 23:59:59.999],
        ordered by date then start time. Dates must be strict YYYY-MM-DD.
        """
        log.info(f"Fetching classes between {start_date} and {end_date}.")
        try:
            range_start, range_end = date_utils.normalize_date_range(start_date, end_date)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

        classes = await self._list_between(range_start, range_end)
        return class_models.ClassRangeResponse(
            start_date=range_start.date(),
            end_date=range_end.date(),
            days_in_range=date_utils.days_between_inclusive(range_start.date(), range_end.date()),
            count=len(classes),
            classes=classes,
            grouped_classes=self._group_by_date(classes)
        )

    async def get_week_classes(self, week_offset: int = 0, today: Optional[date] = None) -> class_models.WeekClassesResponse:
        week = date_utils.get_week_dates(week_offset, today)
        classes = await self._list_between(week.monday, week.sunday)
        return class_models.WeekClassesResponse(
            week_offset=week_offset,
            week_start=week.monday.date(),
            week_end=week.sunday.date(),
            count=len(classes),
            classes=classes,
            grouped_classes=self._group_by_date(classes)
        )

    # --- Updates ---

    async def update_class(
        self,
        class_id: UUID,
        data: class_models.ClassPatch,
        current_admin: db_models.Admins
    ) -> class_models.ClassResponse:
        """
        Partial edit of scalar fields. The roster is untouched.
        A null title, capacity or cancellation flag leaves that field as it is;
        full ISO start/end times move the class to their day.
        """
        log.info(f"Admin {current_admin.id} attempting to patch class {class_id}.")
        try:
            class_session = await self._get_class_by_id_internal(class_id)

            update_data = {
                key: value
                for key, value in data.model_dump(exclude_unset=True).items()
                if value is not None or key in self.PATCH_NULLABLE_FIELDS
            }
            if not update_data:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields provided to update.")

            attendee_count = len(class_session.attendance_logs)
            if "capacity" in update_data and update_data["capacity"] < attendee_count:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Cannot reduce capacity to {update_data['capacity']}. Class has {attendee_count} attendees."
                )

            # Times are re-anchored on the (possibly new) date
            new_date = update_data.pop("date", None) or class_session.date
            start_value = update_data.pop("start_time", None) or class_session.start_time.time()
            end_value = update_data.pop("end_time", None) or class_session.end_time.time()
            start_dt, end_dt = self._resolve_times(new_date, start_value, end_value)
            # a full ISO start time carries its own day
            new_date = start_dt.date()

            if "title" in update_data:
                update_data["title"] = update_data["title"].strip()
            for key, value in update_data.items():
                setattr(class_session, key, value)
            class_session.date = new_date
            class_session.start_time = start_dt
            class_session.end_time = end_dt

            self.db.add(class_session)
            await self.db.flush()

            updated = await self._get_class_by_id_internal(class_id, refresh=True)
            return class_models.ClassResponse(
                message="Class updated successfully",
                class_session=class_models.ClassRead.model_validate(updated)
            )
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error in update_class for class {class_id}: {e}", exc_info=True)
            raise

    async def update_class_with_attendees(
        self,
        class_id: UUID,
        class_data: dict,
        current_admin: db_models.Admins
    ) -> class_models.ClassUpdateResponse:
        """
        Replaces a class's scalar fields and, when `attendee_ids` is given, its
        complete roster. Everything is validated before anything is written:
        itemized payload errors, class existence, roster size against capacity
        and existence of every client. The roster is then reconciled: removed
        attendees are deleted, new ones are inserted and stamped with the
        acting admin, kept rows are left untouched.
        """
        log.info(f"Admin {current_admin.id} attempting full update of class {class_id}.")
        try:
            # 1. Validate payload
            validation = validate_class_update_data(class_data)
            if not validation.is_valid:
                log.warning(f"Class update validation failed for {class_id}: {validation.errors}")
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail={"error": "Validation failed", "details": validation.errors}
                )
            data = class_models.ClassUpdateWithAttendees.model_validate(class_data)

            # 2. Fetch
            class_session = await self._get_class_by_id_internal(class_id)
            current_ids = [entry.client_id for entry in class_session.attendance_logs]

            # 3. Roster checks
            roster_requested = data.attendee_ids is not None
            desired_raw = dedupe_ids(data.attendee_ids) if roster_requested else []
            requested_count = self._distinct_id_count(desired_raw)
            if roster_requested and requested_count > data.capacity:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Cannot add {requested_count} attendees. Class capacity is {data.capacity}."
                )
            if not roster_requested and len(current_ids) > data.capacity:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Cannot reduce capacity to {data.capacity}. Class has {len(current_ids)} attendees."
                )

            desired_ids = current_ids
            if roster_requested:
                desired_ids, missing = await self.client_service.find_missing_client_ids(desired_raw)
                if missing:
                    log.warning(f"Class {class_id} roster references unknown clients: {missing}")
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail={
                            "error": f"The following client IDs do not exist: {', '.join(missing)}",
                            "details": [f"Client not found: {m}" for m in missing]
                        }
                    )

            start_dt, end_dt = self._resolve_times(data.date, data.start_time, data.end_time)
            diff = MembershipDiff.compute(current_ids, desired_ids)

            # 4. Apply scalar fields
            class_session.title = data.title.strip()
            class_session.description = data.description
            class_session.location = data.location
            class_session.capacity = data.capacity
            class_session.date = start_dt.date()
            class_session.start_time = start_dt
            class_session.end_time = end_dt
            class_session.is_cancelled = data.is_cancelled

            # 5. Apply roster diff
            removed = set(diff.removed)
            for entry in list(class_session.attendance_logs):
                if entry.client_id in removed:
                    class_session.attendance_logs.remove(entry)
            for client_id in diff.added:
                class_session.attendance_logs.append(
                    db_models.AttendanceLogs(client_id=client_id, checked_in_by_id=current_admin.id)
                )

            self.db.add(class_session)
            await self.db.flush()

            # 6. Reload and report
            updated = await self._get_class_by_id_internal(class_id, refresh=True)
            log.info(
                f"Class {class_id} updated: +{diff.added_count} -{diff.removed_count} ={diff.kept_count}"
            )
            return class_models.ClassUpdateResponse(
                message="Class updated successfully",
                class_session=class_models.ClassRead.model_validate(updated),
                changes=class_models.ClassChangeSummary(
                    attendees_updated=diff.has_changes,
                    added_count=diff.added_count,
                    removed_count=diff.removed_count,
                    kept_count=diff.kept_count,
                    total_attendees=len(updated.attendance_logs)
                ),
                updated_by=AdminSummary.model_validate(current_admin)
            )
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error in update_class_with_attendees for class {class_id}: {e}", exc_info=True)
            raise

    async def check_in_client(
        self,
        class_id: UUID,
        client_id: UUID,
        current_admin: db_models.Admins
    ) -> class_models.CheckInResponse:
        """Records one attendee. 409 on a duplicate check-in or a full class."""
        log.info(f"Admin {current_admin.id} checking in client {client_id} to class {class_id}.")
        try:
            class_session = await self._get_class_by_id_internal(class_id)
            await self.client_service._get_client_by_id_internal(client_id)

            if any(entry.client_id == client_id for entry in class_session.attendance_logs):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Client is already checked in to this class"
                )
            if len(class_session.attendance_logs) >= class_session.capacity:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Class is full")

            entry = db_models.AttendanceLogs(client_id=client_id, checked_in_by_id=current_admin.id)
            class_session.attendance_logs.append(entry)
            await self.db.flush()

            updated = await self._get_class_by_id_internal(class_id, refresh=True)
            created = next(e for e in updated.attendance_logs if e.client_id == client_id)
            return class_models.CheckInResponse(
                message="Client checked in successfully",
                attendee=class_models.AttendeeRead.model_validate(created),
                attendee_count=len(updated.attendance_logs)
            )
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error in check_in_client for class {class_id}: {e}", exc_info=True)
            raise
