'''

'''
from typing import Annotated, Iterable, Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..models import client as client_models
from ..models.admin import AdminSummary
from ..common.security_utils import HashedPassword
from ..common.config import settings
from ..common.logger import log

RECENT_HISTORY_LIMIT = 10


class ClientService:
    """
    Service for gym members: creation, profile edits, listing and credential checks.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    # --- Internal Fetchers ---

    async def get_client_orm(self, client_id: UUID) -> Optional[db_models.Clients]:
        return await self.db.get(db_models.Clients, client_id)

    async def _get_client_by_id_internal(self, client_id: UUID) -> db_models.Clients:
        """Raises 404 if not found."""
        client = await self.get_client_orm(client_id)
        if not client:
            log.warning(f"Tried to fetch non-existing client: {client_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
        return client

    async def _get_client_by_username(self, username: str) -> Optional[db_models.Clients]:
        stmt = select(db_models.Clients).filter(db_models.Clients.username == username)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def find_missing_client_ids(self, client_ids: Iterable[str]) -> tuple[list[UUID], list[str]]:
        """
        Splits requested ids into (existing ids as UUIDs, missing ids as given).
        Ids that are not valid UUIDs count as missing. Spellings of the same
        UUID (case, hyphenation) collapse to one entry, first one wins.
        """
        parsed: dict[str, UUID] = {}
        missing: list[str] = []
        for raw in client_ids:
            try:
                parsed[raw] = UUID(str(raw))
            except ValueError:
                missing.append(raw)

        existing: set[UUID] = set()
        if parsed:
            stmt = select(db_models.Clients.id).filter(db_models.Clients.id.in_(list(parsed.values())))
            result = await self.db.execute(stmt)
            existing = set(result.scalars().all())

        found: list[UUID] = []
        for raw, client_id in parsed.items():
            if client_id in existing:
                if client_id not in found:
                    found.append(client_id)
            else:
                missing.append(raw)
        return found, missing

    @staticmethod
    def _normalize_username(username: str) -> str:
        return username.strip().lower()

    async def _ensure_username_available(self, username: str, exclude_client_id: Optional[UUID] = None):
        existing = await self._get_client_by_username(username)
        if existing and existing.id != exclude_client_id:
            log.warning(f"Username conflict on '{username}'.")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f'Username "{username}" is already taken'
            )

    # --- Public Methods (API-Facing) ---

    async def create_client(self, data: client_models.ClientCreate) -> client_models.ClientResponse:
        username = self._normalize_username(data.username)
        log.info(f"Attempting to create client '{username}'.")
        try:
            await self._ensure_username_available(username)

            new_client = db_models.Clients(
                name=data.name,
                username=username,
                password=HashedPassword.get_hash(data.password),
                phone=data.phone or None,
                is_active=data.is_active
            )
            self.db.add(new_client)
            await self.db.flush()
            await self.db.refresh(new_client)

            return client_models.ClientResponse(
                message="Client created successfully",
                client=client_models.ClientRead.model_validate(new_client)
            )
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error in create_client for '{username}': {e}", exc_info=True)
            raise

    async def get_client_by_id(self, client_id: UUID, detailed: bool = False) -> client_models.ClientResponse:
        """
        Returns one client. The detailed view adds the latest payments,
        the latest attendance records and the client's groups.
        """
        log.info(f"Fetching client {client_id} (detailed={detailed}).")
        client = await self._get_client_by_id_internal(client_id)
        if not detailed:
            return client_models.ClientResponse(
                message="Client retrieved successfully",
                client=client_models.ClientRead.model_validate(client)
            )

        payments_stmt = select(db_models.Payments).filter(
            db_models.Payments.client_id == client_id
        ).order_by(db_models.Payments.payment_date.desc()).limit(RECENT_HISTORY_LIMIT)
        payments = (await self.db.execute(payments_stmt)).scalars().all()

        attendance_stmt = select(db_models.AttendanceLogs).options(
            selectinload(db_models.AttendanceLogs.session).selectinload(db_models.ClassSessions.instructor),
            selectinload(db_models.AttendanceLogs.checked_in_by)
        ).filter(
            db_models.AttendanceLogs.client_id == client_id
        ).order_by(db_models.AttendanceLogs.check_in_time.desc()).limit(RECENT_HISTORY_LIMIT)
        attendance = (await self.db.execute(attendance_stmt)).scalars().all()

        groups_stmt = select(db_models.ClientGroups).join(
            db_models.ClientGroupMemberships,
            db_models.ClientGroupMemberships.client_group_id == db_models.ClientGroups.id
        ).filter(
            db_models.ClientGroupMemberships.client_id == client_id
        ).order_by(db_models.ClientGroups.name)
        groups = (await self.db.execute(groups_stmt)).scalars().all()

        detail = client_models.ClientDetailRead(
            **client_models.ClientRead.model_validate(client).model_dump(),
            recent_payments=[client_models.ClientPaymentBrief.model_validate(p) for p in payments],
            recent_attendance=[
                client_models.ClientAttendanceBrief(
                    id=log_row.id,
                    session_id=log_row.session_id,
                    session_title=log_row.session.title,
                    session_date=log_row.session.start_time,
                    instructor_name=log_row.session.instructor.name if log_row.session.instructor else None,
                    check_in_time=log_row.check_in_time,
                    checked_in_by=AdminSummary.model_validate(log_row.checked_in_by) if log_row.checked_in_by else None
                )
                for log_row in attendance
            ],
            groups=[client_models.ClientGroupBrief.model_validate(g) for g in groups]
        )
        return client_models.ClientResponse(message="Client retrieved successfully", client=detail)

    async def update_client(self, client_id: UUID, data: client_models.ClientUpdate) -> client_models.ClientResponse:
        log.info(f"Attempting to update client {client_id}.")
        try:
            # 1. Fetch
            client = await self._get_client_by_id_internal(client_id)

            # 2. Collect fields; null or an empty password keeps the current value
            update_data = {
                key: value
                for key, value in data.model_dump(exclude_unset=True).items()
                if value is not None or key == "phone"
            }
            password = update_data.pop("password", None)
            if "username" in update_data:
                update_data["username"] = self._normalize_username(update_data["username"])
                await self._ensure_username_available(update_data["username"], exclude_client_id=client_id)
            if "name" in update_data:
                update_data["name"] = update_data["name"].strip()

            if password is not None and password.strip():
                if len(password) < settings.MIN_PASSWORD_LENGTH:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long"
                    )
                update_data["password"] = HashedPassword.get_hash(password)

            if not update_data:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields provided to update.")

            # 3. Apply
            for key, value in update_data.items():
                setattr(client, key, value)

            self.db.add(client)
            await self.db.flush()
            await self.db.refresh(client)

            return client_models.ClientResponse(
                message="Client updated successfully",
                client=client_models.ClientRead.model_validate(client)
            )
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error in update_client for client {client_id}: {e}", exc_info=True)
            raise

    async def get_all_clients(
        self,
        include_inactive: bool = True,
        limit: Optional[int] = None,
        offset: Optional[int] = None
    ) -> client_models.ClientListResponse:
        """Active clients first, then alphabetical."""
        log.info(f"Fetching clients (include_inactive={include_inactive}, limit={limit}, offset={offset}).")
        base = select(db_models.Clients)
        if not include_inactive:
            base = base.filter(db_models.Clients.is_active.is_(True))

        count_stmt = select(func.count()).select_from(base.subquery())
        total_count = (await self.db.execute(count_stmt)).scalar_one()

        stmt = base.order_by(db_models.Clients.is_active.desc(), db_models.Clients.name)
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)
        clients = (await self.db.execute(stmt)).scalars().all()

        has_more = bool(limit) and (offset or 0) + len(clients) < total_count
        return client_models.ClientListResponse(
            clients=[client_models.ClientRead.model_validate(c) for c in clients],
            total_count=total_count,
            has_more=has_more
        )

    async def authenticate_client(self, username: str, password: str) -> db_models.Clients:
        """
        Checks member credentials. Unknown username and wrong password share one message.
        """
        normalized = self._normalize_username(username)
        client = await self._get_client_by_username(normalized)
        if not client or not HashedPassword.verify(password, client.password):
            log.warning(f"Login failed for client: {normalized} - Incorrect username or password")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid username or password.",
                headers={"WWW-Authenticate": "Bearer"},
            )
        if not client.is_active:
            log.warning(f"Login failed for client: {normalized} - Client is inactive.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Account is deactivated. Please contact support."
            )
        return client
