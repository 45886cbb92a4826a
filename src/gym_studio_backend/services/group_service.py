'''

'''
from typing import Annotated, Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..models import group as group_models
from ..models.client import ClientSummary
from ..models.common import MessageResponse
from ..core.validators import (
    validate_group_data,
    GROUP_NAME_MIN_LENGTH_CREATE,
    GROUP_NAME_MIN_LENGTH_EDIT
)
from ..core.reconciliation import MembershipDiff, dedupe_ids
from ..common.logger import log
from .client_service import ClientService


class ClientGroupService:
    """
    Service for named client groups and their membership.
    Create and edit take the COMPLETE desired member list and reconcile it
    against the stored memberships in the request transaction.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        client_service: Annotated[ClientService, Depends(ClientService)]
    ):
        self.db = db
        self.client_service = client_service

    # --- Internal Helpers ---

    def _group_query(self):
        return select(db_models.ClientGroups).options(
            selectinload(db_models.ClientGroups.memberships).selectinload(db_models.ClientGroupMemberships.client)
        )

    async def _get_group_by_id_internal(self, group_id: UUID, refresh: bool = False) -> db_models.ClientGroups:
        """Fetches a group with members loaded. Raises 404 if not found."""
        stmt = self._group_query().filter(db_models.ClientGroups.id == group_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        group = result.scalars().first()
        if not group:
            log.warning(f"Tried to fetch non-existing group: {group_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
        return group

    async def _get_group_by_name(self, name: str) -> Optional[db_models.ClientGroups]:
        stmt = select(db_models.ClientGroups).filter(db_models.ClientGroups.name == name)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    def _to_group_read(group: db_models.ClientGroups, include_inactive: bool = True) -> group_models.GroupRead:
        clients = sorted((m.client for m in group.memberships), key=lambda c: c.name.lower())
        active = [c for c in clients if c.is_active]
        listed = clients if include_inactive else active
        return group_models.GroupRead(
            id=group.id,
            name=group.name,
            description=group.description,
            created_at=group.created_at,
            members=[ClientSummary.model_validate(c) for c in listed],
            member_ids=[c.id for c in listed],
            member_count=len(clients),
            active_member_count=len(active),
            inactive_member_count=len(clients) - len(active)
        )

    @staticmethod
    def _validated_payload(data: dict, min_name_length: int) -> group_models.GroupWrite:
        validation = validate_group_data(data, min_name_length=min_name_length)
        if not validation.is_valid:
            log.warning(f"Group validation failed: {validation.errors}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"error": "Validation failed", "details": validation.errors}
            )
        payload = group_models.GroupWrite.model_validate(data)
        description = payload.description.strip() if payload.description else None
        return group_models.GroupWrite(
            name=payload.name.strip(),
            description=description or None,
            client_ids=dedupe_ids(payload.client_ids)
        )

    async def _resolve_members(self, client_ids: list[str]) -> list[UUID]:
        """All requested clients must exist; otherwise 400 naming every missing id."""
        found, missing = await self.client_service.find_missing_client_ids(client_ids)
        if missing:
            log.warning(f"Group membership references unknown clients: {missing}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "error": f"The following client IDs do not exist: {', '.join(missing)}",
                    "details": [f"Client not found: {m}" for m in missing]
                }
            )
        return found

    # --- Public Write Methods ---

    async def create_group(self, data: dict) -> group_models.GroupResponse:
        log.info(f"Attempting to create client group '{data.get('name')}'.")
        try:
            # 1. Validate (nothing is written before all checks pass)
            payload = self._validated_payload(data, GROUP_NAME_MIN_LENGTH_CREATE)
            if await self._get_group_by_name(payload.name):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f'Group name "{payload.name}" already exists'
                )
            member_ids = await self._resolve_members(payload.client_ids)

            # 2. Create group and memberships
            group = db_models.ClientGroups(name=payload.name, description=payload.description)
            group.memberships = [db_models.ClientGroupMemberships(client_id=cid) for cid in member_ids]
            self.db.add(group)
            await self.db.flush()

            # 3. Reload
            created = await self._get_group_by_id_internal(group.id, refresh=True)
            diff = MembershipDiff.compute([], member_ids)
            return group_models.GroupResponse(
                message="Client group created successfully",
                group=self._to_group_read(created),
                changes=self._changes(diff, name_changed=True, description_changed=payload.description is not None)
            )
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error in create_group: {e}", exc_info=True)
            raise

    @staticmethod
    def _changes(diff: MembershipDiff, name_changed: bool, description_changed: bool) -> group_models.GroupChanges:
        return group_models.GroupChanges(
            name_changed=name_changed,
            description_changed=description_changed,
            added_client_ids=diff.added,
            removed_client_ids=diff.removed,
            kept_client_ids=diff.kept,
            added_count=diff.added_count,
            removed_count=diff.removed_count,
            kept_count=diff.kept_count
        )

    async def edit_group(self, group_id: UUID, data: dict) -> group_models.GroupResponse:
        """
        Replaces a group's name, description and complete member list.
        Reusing the group's own name is allowed; another group's name is a 409.
        """
        log.info(f"Attempting to edit client group {group_id}.")
        try:
            # 1. Validate
            payload = self._validated_payload(data, GROUP_NAME_MIN_LENGTH_EDIT)
            group = await self._get_group_by_id_internal(group_id)

            same_name = await self._get_group_by_name(payload.name)
            if same_name and same_name.id != group.id:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f'Group name "{payload.name}" already exists'
                )
            member_ids = await self._resolve_members(payload.client_ids)

            # 2. Diff
            current_ids = [m.client_id for m in group.memberships]
            diff = MembershipDiff.compute(current_ids, member_ids)
            name_changed = group.name != payload.name
            description_changed = (group.description or None) != payload.description

            # 3. Apply
            group.name = payload.name
            group.description = payload.description
            removed = set(diff.removed)
            for membership in list(group.memberships):
                if membership.client_id in removed:
                    group.memberships.remove(membership)
            for client_id in diff.added:
                group.memberships.append(db_models.ClientGroupMemberships(client_id=client_id))

            self.db.add(group)
            await self.db.flush()

            # 4. Reload and report
            updated = await self._get_group_by_id_internal(group_id, refresh=True)
            return group_models.GroupResponse(
                message=f'Group "{updated.name}" has been successfully updated',
                group=self._to_group_read(updated),
                changes=self._changes(diff, name_changed, description_changed)
            )
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error in edit_group for group {group_id}: {e}", exc_info=True)
            raise

    async def delete_group(self, group_id: UUID) -> MessageResponse:
        log.info(f"Attempting to delete client group {group_id}.")
        group = await self._get_group_by_id_internal(group_id)
        # memberships go with the group (delete-orphan)
        await self.db.delete(group)
        await self.db.flush()
        return MessageResponse(message="Client group deleted successfully")

    # --- Public Read Methods ---

    async def get_group_by_id(self, group_id: UUID) -> group_models.GroupResponse:
        group = await self._get_group_by_id_internal(group_id)
        return group_models.GroupResponse(
            message="Client group retrieved successfully",
            group=self._to_group_read(group)
        )

    async def get_all_groups(
        self,
        search: Optional[str] = None,
        include_empty: bool = True,
        include_inactive: bool = True
    ) -> group_models.GroupListResponse:
        """
        Groups ordered by name. `search` matches the name case-insensitively;
        `include_inactive=False` lists only active members (counts stay complete).
        """
        stmt = self._group_query().order_by(db_models.ClientGroups.name)
        if search and search.strip():
            stmt = stmt.filter(db_models.ClientGroups.name.ilike(f"%{search.strip()}%"))
        result = await self.db.execute(stmt)

        groups = [self._to_group_read(g, include_inactive) for g in result.scalars().all()]
        if not include_empty:
            groups = [g for g in groups if g.member_count > 0]
        return group_models.GroupListResponse(count=len(groups), groups=groups)

    async def get_groups_summary(self) -> group_models.GroupsSummaryResponse:
        result = await self.db.execute(self._group_query())
        groups = [self._to_group_read(g) for g in result.scalars().all()]

        total_members = sum(g.member_count for g in groups)
        active_members = sum(g.active_member_count for g in groups)
        average = round(total_members / len(groups), 2) if groups else 0.0
        return group_models.GroupsSummaryResponse(
            total_groups=len(groups),
            active_groups=sum(1 for g in groups if g.active_member_count > 0),
            empty_groups=sum(1 for g in groups if g.member_count == 0),
            total_members=total_members,
            active_members=active_members,
            inactive_members=total_members - active_members,
            average_members_per_group=average
        )

    async def check_name_availability(self, name: Optional[str]) -> group_models.NameAvailabilityResponse:
        if not name or not name.strip():
            return group_models.NameAvailabilityResponse(available=False, message="Group name is required")
        existing = await self._get_group_by_name(name.strip())
        return group_models.NameAvailabilityResponse(
            available=existing is None,
            message="Group name is already taken" if existing else "Group name is available"
        )

    async def preview_group_changes(self, group_id: UUID, data: dict) -> group_models.GroupPreviewResponse:
        """
        Read-only: reports what `edit_group` would change for this payload.
        """
        payload = self._validated_payload(data, GROUP_NAME_MIN_LENGTH_EDIT)
        group = await self._get_group_by_id_internal(group_id)
        member_ids = await self._resolve_members(payload.client_ids)

        current_ids = [m.client_id for m in group.memberships]
        diff = MembershipDiff.compute(current_ids, member_ids)

        added_clients: list[ClientSummary] = []
        if diff.added:
            stmt = select(db_models.Clients).filter(db_models.Clients.id.in_(diff.added))
            by_id = {c.id: c for c in (await self.db.execute(stmt)).scalars().all()}
            added_clients = [ClientSummary.model_validate(by_id[cid]) for cid in diff.added]
        current_clients = {m.client_id: m.client for m in group.memberships}
        removed_clients = [ClientSummary.model_validate(current_clients[cid]) for cid in diff.removed]

        return group_models.GroupPreviewResponse(
            changes=group_models.PreviewFlags(
                name_will_change=group.name != payload.name,
                description_will_change=(group.description or None) != payload.description,
                members_will_change=diff.has_changes
            ),
            member_changes=group_models.PreviewMemberChanges(
                current=current_ids,
                new=member_ids,
                added=added_clients,
                removed=removed_clients,
                kept=diff.kept
            ),
            new_values=group_models.PreviewNewValues(
                name=payload.name,
                description=payload.description,
                member_count=len(member_ids)
            )
        )
