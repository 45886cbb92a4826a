import pytest
from datetime import date, datetime, time
from uuid import uuid4
from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from gym_studio_backend.database import models as db_models
from gym_studio_backend.services.class_service import ClassService
from gym_studio_backend.models import classes as class_models
from tests.database import factories

from pprint import pp as pprint


def _recurring_payload(**overrides) -> dict:
    payload = {
        "type": "recurring",
        "title": "Yoga",
        "capacity": 15,
        "start_time": "09:00",
        "end_time": "10:00",
        "start_date": "2024-01-01",
        "end_date": "2024-01-10",
        "days": ["Mon", "Wed"],
    }
    payload.update(overrides)
    return payload


def _full_update_payload(class_session: db_models.ClassSessions, **overrides) -> dict:
    payload = {
        "title": class_session.title,
        "description": class_session.description,
        "location": class_session.location,
        "capacity": class_session.capacity,
        "date": class_session.date.isoformat(),
        "start_time": class_session.start_time.strftime("%H:%M"),
        "end_time": class_session.end_time.strftime("%H:%M"),
        "is_cancelled": class_session.is_cancelled,
    }
    payload.update(overrides)
    return payload


@pytest.mark.anyio
class TestClassServiceCreate:

    async def test_create_recurring_yoga_monday_wednesday(
        self,
        class_service: ClassService,
        test_admin_orm: db_models.Admins
    ):
        """Mon/Wed from 2024-01-01 to 2024-01-10 materializes four independent sessions."""
        print("\n--- Testing recurring creation (Yoga Mon/Wed) ---")
        response = await class_service.create_classes(_recurring_payload(), test_admin_orm)

        assert response.count == 4
        assert [c.date for c in response.classes] == [
            date(2024, 1, 1), date(2024, 1, 3), date(2024, 1, 8), date(2024, 1, 10)
        ]
        for created in response.classes:
            assert created.start_time == datetime.combine(created.date, time(9, 0))
            assert created.end_time == datetime.combine(created.date, time(10, 0))
            assert created.instructor.id == test_admin_orm.id
            assert created.attendee_count == 0
        assert len({c.id for c in response.classes}) == 4
        pprint(response.classes[0].model_dump())

    async def test_create_recurring_without_days_creates_nothing(
        self,
        class_service: ClassService,
        test_admin_orm: db_models.Admins
    ):
        response = await class_service.create_classes(_recurring_payload(days=[]), test_admin_orm)
        assert response.count == 0
        assert response.classes == []

    async def test_create_recurring_start_after_end_creates_nothing(
        self,
        class_service: ClassService,
        test_admin_orm: db_models.Admins
    ):
        response = await class_service.create_classes(
            _recurring_payload(start_date="2024-01-10", end_date="2024-01-01"), test_admin_orm
        )
        assert response.count == 0

    async def test_create_single_class(
        self,
        class_service: ClassService,
        test_admin_orm: db_models.Admins
    ):
        payload = {
            "type": "single",
            "title": "  HIIT  ",
            "capacity": 8,
            "date": "2024-02-05",
            "start_time": "18:00",
            "end_time": "18:45",
            "location": "Studio B",
        }
        response = await class_service.create_classes(payload, test_admin_orm)

        assert response.count == 1
        created = response.classes[0]
        assert created.title == "HIIT"
        assert created.start_time == datetime(2024, 2, 5, 18, 0)
        assert created.end_time == datetime(2024, 2, 5, 18, 45)
        assert created.available_spots == 8

    async def test_create_single_class_end_before_start(
        self,
        class_service: ClassService,
        test_admin_orm: db_models.Admins
    ):
        payload = {
            "type": "single", "title": "HIIT", "capacity": 8,
            "date": "2024-02-05", "start_time": "18:00", "end_time": "17:00",
        }
        with pytest.raises(HTTPException) as e:
            await class_service.create_classes(payload, test_admin_orm)

        assert e.value.status_code == 400
        assert e.value.detail == "End time must be after start time"

    async def test_create_with_unknown_type_fails_validation(
        self,
        class_service: ClassService,
        test_admin_orm: db_models.Admins
    ):
        with pytest.raises(ValidationError):
            await class_service.create_classes(_recurring_payload(type="monthly"), test_admin_orm)


@pytest.mark.anyio
class TestClassServiceRead:

    async def test_get_classes_by_date_range_is_inclusive(
        self,
        class_service: ClassService,
        db_session: AsyncSession,
        test_admin_orm: db_models.Admins
    ):
        factories.ClassSessionFactory(instructor=test_admin_orm, date=date(2024, 1, 1))
        factories.ClassSessionFactory(
            instructor=test_admin_orm,
            date=date(2024, 1, 7),
            start_time=datetime(2024, 1, 7, 21, 0),
            end_time=datetime(2024, 1, 7, 23, 0),
        )
        factories.ClassSessionFactory(instructor=test_admin_orm, date=date(2024, 1, 8))
        await db_session.flush()

        response = await class_service.get_classes_by_date_range("2024-01-01", "2024-01-07")

        assert response.count == 2
        assert response.days_in_range == 7
        assert set(response.grouped_classes.keys()) == {"2024-01-01", "2024-01-07"}

    async def test_get_classes_by_date_range_rejects_bad_input(self, class_service: ClassService):
        with pytest.raises(HTTPException) as e:
            await class_service.get_classes_by_date_range("2024-01-07", "2024-01-01")
        assert e.value.status_code == 400
        assert e.value.detail == "Start date must be before or equal to end date"

        with pytest.raises(HTTPException) as e:
            await class_service.get_classes_by_date_range("01/01/2024", "2024-01-07")
        assert e.value.status_code == 400

    async def test_get_week_classes(
        self,
        class_service: ClassService,
        db_session: AsyncSession,
        test_admin_orm: db_models.Admins
    ):
        factories.ClassSessionFactory(instructor=test_admin_orm, date=date(2024, 1, 3))
        factories.ClassSessionFactory(instructor=test_admin_orm, date=date(2024, 1, 10))
        await db_session.flush()

        this_week = await class_service.get_week_classes(0, today=date(2024, 1, 7))
        next_week = await class_service.get_week_classes(1, today=date(2024, 1, 7))

        assert this_week.week_start == date(2024, 1, 1)
        assert this_week.week_end == date(2024, 1, 7)
        assert [c.date for c in this_week.classes] == [date(2024, 1, 3)]
        assert [c.date for c in next_week.classes] == [date(2024, 1, 10)]

    async def test_get_class_not_found(self, class_service: ClassService):
        with pytest.raises(HTTPException) as e:
            await class_service.get_class_by_id(uuid4())
        assert e.value.status_code == 404


@pytest.mark.anyio
class TestClassServiceRoster:

    async def test_roster_over_capacity_leaves_roster_unchanged(
        self,
        class_service: ClassService,
        db_session: AsyncSession,
        test_admin_orm: db_models.Admins
    ):
        """Capacity 5 with 6 requested attendees fails; the prior roster stays."""
        print("\n--- Testing roster replacement over capacity ---")
        class_session = factories.ClassSessionFactory(instructor=test_admin_orm, capacity=5)
        existing = [factories.AttendanceLogFactory(session=class_session) for _ in range(2)]
        clients = [factories.ClientFactory() for _ in range(6)]
        await db_session.flush()
        before = {log.client_id for log in existing}

        payload = _full_update_payload(
            class_session,
            title="Renamed",
            attendee_ids=[str(c.id) for c in clients]
        )
        with pytest.raises(HTTPException) as e:
            await class_service.update_class_with_attendees(class_session.id, payload, test_admin_orm)

        assert e.value.status_code == 400
        assert e.value.detail == "Cannot add 6 attendees. Class capacity is 5."

        after = await class_service.get_class_by_id(class_session.id)
        assert {a.client_id for a in after.class_session.attendees} == before
        assert after.class_session.title == "Morning Yoga"
        print(f"--- Correctly raised HTTPException: {e.value.detail} ---")

    async def test_roster_replacement_applies_diff(
        self,
        class_service: ClassService,
        db_session: AsyncSession,
        test_admin_orm: db_models.Admins
    ):
        """[A, B, C] -> [B, C, D]: A removed, D added by the acting admin, B and C untouched."""
        class_session = factories.ClassSessionFactory(instructor=test_admin_orm, capacity=5)
        a, b, c, d = (factories.ClientFactory() for _ in range(4))
        for client in (a, b, c):
            factories.AttendanceLogFactory(session=class_session, client=client)
        await db_session.flush()

        payload = _full_update_payload(
            class_session,
            attendee_ids=[str(b.id), str(c.id), str(d.id), str(d.id)]
        )
        response = await class_service.update_class_with_attendees(class_session.id, payload, test_admin_orm)
        pprint(response.changes.model_dump())

        assert response.changes.added_count == 1
        assert response.changes.removed_count == 1
        assert response.changes.kept_count == 2
        assert response.changes.total_attendees == 3
        assert response.changes.attendees_updated is True
        assert response.updated_by.id == test_admin_orm.id

        attendees = {att.client_id: att for att in response.class_session.attendees}
        assert set(attendees) == {b.id, c.id, d.id}
        assert attendees[d.id].checked_in_by.id == test_admin_orm.id
        # kept rows keep their original attribution
        assert attendees[b.id].checked_in_by is None
        assert attendees[c.id].checked_in_by is None

    async def test_roster_with_unknown_clients_names_them(
        self,
        class_service: ClassService,
        db_session: AsyncSession,
        test_admin_orm: db_models.Admins
    ):
        class_session = factories.ClassSessionFactory(instructor=test_admin_orm)
        known = factories.ClientFactory()
        await db_session.flush()
        missing_id = str(uuid4())

        payload = _full_update_payload(class_session, attendee_ids=[str(known.id), missing_id, "not-a-uuid"])
        with pytest.raises(HTTPException) as e:
            await class_service.update_class_with_attendees(class_session.id, payload, test_admin_orm)

        assert e.value.status_code == 400
        assert missing_id in e.value.detail["error"]
        assert "not-a-uuid" in e.value.detail["error"]
        assert len(e.value.detail["details"]) == 2

        after = await class_service.get_class_by_id(class_session.id)
        assert after.class_session.attendees == []

    async def test_update_without_roster_keeps_attendees(
        self,
        class_service: ClassService,
        db_session: AsyncSession,
        test_admin_orm: db_models.Admins
    ):
        class_session = factories.ClassSessionFactory(instructor=test_admin_orm)
        log = factories.AttendanceLogFactory(session=class_session)
        await db_session.flush()

        payload = _full_update_payload(class_session, title="Evening Yoga", start_time="18:00", end_time="19:00")
        response = await class_service.update_class_with_attendees(class_session.id, payload, test_admin_orm)

        assert response.class_session.title == "Evening Yoga"
        assert response.class_session.start_time.time() == time(18, 0)
        assert [a.client_id for a in response.class_session.attendees] == [log.client_id]
        assert response.changes.attendees_updated is False

    async def test_capacity_below_current_roster_is_rejected(
        self,
        class_service: ClassService,
        db_session: AsyncSession,
        test_admin_orm: db_models.Admins
    ):
        class_session = factories.ClassSessionFactory(instructor=test_admin_orm, capacity=5)
        for _ in range(3):
            factories.AttendanceLogFactory(session=class_session)
        await db_session.flush()

        with pytest.raises(HTTPException) as e:
            await class_service.update_class_with_attendees(
                class_session.id, _full_update_payload(class_session, capacity=2), test_admin_orm
            )
        assert e.value.status_code == 400
        assert "Cannot reduce capacity to 2" in e.value.detail

    async def test_roster_counts_each_client_once_across_spellings(
        self,
        class_service: ClassService,
        db_session: AsyncSession,
        test_admin_orm: db_models.Admins
    ):
        """Lower and upper-case spellings of one client id fill a single seat."""
        class_session = factories.ClassSessionFactory(instructor=test_admin_orm, capacity=2)
        a, b = factories.ClientFactory(), factories.ClientFactory()
        await db_session.flush()

        payload = _full_update_payload(
            class_session,
            attendee_ids=[str(a.id), str(a.id).upper(), str(b.id)]
        )
        response = await class_service.update_class_with_attendees(class_session.id, payload, test_admin_orm)
        pprint(response.changes.model_dump())

        assert response.changes.added_count == 2
        assert response.changes.total_attendees == 2
        assert {att.client_id for att in response.class_session.attendees} == {a.id, b.id}

    async def test_invalid_payload_reports_every_problem(
        self,
        class_service: ClassService,
        db_session: AsyncSession,
        test_admin_orm: db_models.Admins
    ):
        class_session = factories.ClassSessionFactory(instructor=test_admin_orm)
        await db_session.flush()

        with pytest.raises(HTTPException) as e:
            await class_service.update_class_with_attendees(
                class_session.id, {"title": "", "capacity": -1}, test_admin_orm
            )
        assert e.value.status_code == 400
        assert e.value.detail["error"] == "Validation failed"
        assert "Title is required and must be a non-empty string" in e.value.detail["details"]
        assert "Capacity must be a positive number" in e.value.detail["details"]

    async def test_update_missing_class(
        self,
        class_service: ClassService,
        test_admin_orm: db_models.Admins
    ):
        payload = {
            "title": "Ghost", "capacity": 5, "date": "2024-01-01",
            "start_time": "09:00", "end_time": "10:00", "is_cancelled": False,
        }
        with pytest.raises(HTTPException) as e:
            await class_service.update_class_with_attendees(uuid4(), payload, test_admin_orm)
        assert e.value.status_code == 404


@pytest.mark.anyio
class TestClassServicePatchAndCheckIn:

    async def test_patch_date_moves_times(
        self,
        class_service: ClassService,
        db_session: AsyncSession,
        test_admin_orm: db_models.Admins
    ):
        class_session = factories.ClassSessionFactory(instructor=test_admin_orm, date=date(2024, 1, 1))
        await db_session.flush()

        response = await class_service.update_class(
            class_session.id, class_models.ClassPatch(date=date(2024, 1, 2)), test_admin_orm
        )

        assert response.class_session.date == date(2024, 1, 2)
        assert response.class_session.start_time == datetime(2024, 1, 2, 9, 0)
        assert response.class_session.end_time == datetime(2024, 1, 2, 10, 0)

    async def test_patch_without_fields(
        self,
        class_service: ClassService,
        db_session: AsyncSession,
        test_admin_orm: db_models.Admins
    ):
        class_session = factories.ClassSessionFactory(instructor=test_admin_orm)
        await db_session.flush()

        with pytest.raises(HTTPException) as e:
            await class_service.update_class(class_session.id, class_models.ClassPatch(), test_admin_orm)
        assert e.value.status_code == 400

    async def test_patch_null_required_fields_are_left_unchanged(
        self,
        class_service: ClassService,
        db_session: AsyncSession,
        test_admin_orm: db_models.Admins
    ):
        class_session = factories.ClassSessionFactory(instructor=test_admin_orm, capacity=8)
        await db_session.flush()

        patch = class_models.ClassPatch.model_validate(
            {"title": None, "capacity": None, "is_cancelled": None, "location": None}
        )
        response = await class_service.update_class(class_session.id, patch, test_admin_orm)

        assert response.class_session.title == "Morning Yoga"
        assert response.class_session.capacity == 8
        assert response.class_session.is_cancelled is False
        assert response.class_session.location is None

    async def test_patch_only_null_required_fields(
        self,
        class_service: ClassService,
        db_session: AsyncSession,
        test_admin_orm: db_models.Admins
    ):
        class_session = factories.ClassSessionFactory(instructor=test_admin_orm)
        await db_session.flush()

        with pytest.raises(HTTPException) as e:
            await class_service.update_class(
                class_session.id, class_models.ClassPatch.model_validate({"capacity": None}), test_admin_orm
            )
        assert e.value.status_code == 400
        assert e.value.detail == "No fields provided to update."

    async def test_patch_capacity_below_current_roster_is_rejected(
        self,
        class_service: ClassService,
        db_session: AsyncSession,
        test_admin_orm: db_models.Admins
    ):
        class_session = factories.ClassSessionFactory(instructor=test_admin_orm, capacity=5)
        for _ in range(3):
            factories.AttendanceLogFactory(session=class_session)
        await db_session.flush()

        with pytest.raises(HTTPException) as e:
            await class_service.update_class(
                class_session.id, class_models.ClassPatch(capacity=1), test_admin_orm
            )
        assert e.value.status_code == 400
        assert e.value.detail == "Cannot reduce capacity to 1. Class has 3 attendees."

        after = await class_service.get_class_by_id(class_session.id)
        assert after.class_session.capacity == 5

        response = await class_service.update_class(
            class_session.id, class_models.ClassPatch(capacity=3), test_admin_orm
        )
        assert response.class_session.capacity == 3

    async def test_patch_full_iso_times_move_the_date(
        self,
        class_service: ClassService,
        db_session: AsyncSession,
        test_admin_orm: db_models.Admins
    ):
        class_session = factories.ClassSessionFactory(instructor=test_admin_orm, date=date(2024, 1, 1))
        await db_session.flush()

        response = await class_service.update_class(
            class_session.id,
            class_models.ClassPatch(start_time="2024-02-01T09:00", end_time="2024-02-01T10:00"),
            test_admin_orm
        )

        assert response.class_session.date == date(2024, 2, 1)
        assert response.class_session.start_time == datetime(2024, 2, 1, 9, 0)
        assert response.class_session.end_time == datetime(2024, 2, 1, 10, 0)

        listed = await class_service.get_classes_by_date_range("2024-02-01", "2024-02-01")
        assert list(listed.grouped_classes) == ["2024-02-01"]

    async def test_check_in_rules(
        self,
        class_service: ClassService,
        db_session: AsyncSession,
        test_admin_orm: db_models.Admins
    ):
        class_session = factories.ClassSessionFactory(instructor=test_admin_orm, capacity=1)
        first, second = factories.ClientFactory(), factories.ClientFactory()
        await db_session.flush()

        response = await class_service.check_in_client(class_session.id, first.id, test_admin_orm)
        assert response.attendee_count == 1
        assert response.attendee.client_id == first.id
        assert response.attendee.checked_in_by.id == test_admin_orm.id

        with pytest.raises(HTTPException) as e:
            await class_service.check_in_client(class_session.id, first.id, test_admin_orm)
        assert e.value.status_code == 409
        assert e.value.detail == "Client is already checked in to this class"

        with pytest.raises(HTTPException) as e:
            await class_service.check_in_client(class_session.id, second.id, test_admin_orm)
        assert e.value.status_code == 409
        assert e.value.detail == "Class is full"
