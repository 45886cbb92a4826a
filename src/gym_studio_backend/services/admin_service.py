'''

'''
from typing import Annotated, Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..models import admin as admin_models
from ..common.logger import log


class AdminService:
    """
    Service for staff accounts. Admin rows are created by the identity webhook;
    here they are read and their flags toggled by super admins.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    # --- Internal Fetchers ---

    async def get_admin_by_external_id(self, external_id: str) -> Optional[db_models.Admins]:
        stmt = select(db_models.Admins).filter(db_models.Admins.external_id == external_id)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def _get_admin_by_id_internal(self, admin_id: UUID) -> db_models.Admins:
        """Raises 404 if not found."""
        admin = await self.db.get(db_models.Admins, admin_id)
        if not admin:
            log.warning(f"Tried to fetch non-existing admin: {admin_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Admin not found")
        return admin

    # --- Public Methods (API-Facing) ---

    async def get_all_admins(self) -> admin_models.AdminListResponse:
        """All admins, active first, then by name."""
        log.info("Fetching all admins.")
        stmt = select(db_models.Admins).order_by(
            db_models.Admins.is_active.desc(),
            db_models.Admins.name
        )
        result = await self.db.execute(stmt)
        admins = [admin_models.AdminRead.model_validate(a) for a in result.scalars().all()]
        return admin_models.AdminListResponse(admins=admins, count=len(admins))

    async def get_admin_by_id(self, admin_id: UUID) -> admin_models.AdminRead:
        admin = await self._get_admin_by_id_internal(admin_id)
        return admin_models.AdminRead.model_validate(admin)

    async def update_admin_flags(
        self,
        data: admin_models.AdminFlagsUpdate,
        current_admin: db_models.Admins
    ) -> admin_models.AdminResponse:
        """
        Flips `is_active` and/or `super_admin` on another admin.
        Restricted to super admins.
        """
        log.info(f"Admin {current_admin.id} attempting to update flags of admin {data.id}.")
        try:
            # 1. Authorize
            if not current_admin.super_admin:
                log.warning(f"Admin {current_admin.id} is not a super admin.")
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Insufficient privileges. Super admin access required."
                )

            # 2. Validate
            update_data = data.model_dump(exclude_unset=True, exclude={"id"})
            update_data = {k: v for k, v in update_data.items() if v is not None}
            if not update_data:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="At least one of is_active or super_admin must be provided"
                )

            # 3. Fetch and apply
            target = await self._get_admin_by_id_internal(data.id)
            for key, value in update_data.items():
                setattr(target, key, value)

            self.db.add(target)
            await self.db.flush()
            await self.db.refresh(target)

            return admin_models.AdminResponse(
                message="Admin updated successfully",
                admin=admin_models.AdminRead.model_validate(target)
            )

        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error in update_admin_flags for admin {data.id}: {e}", exc_info=True)
            raise
