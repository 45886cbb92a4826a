'''
Keeps Admin rows in sync with the external identity provider.
'''
from typing import Annotated, Optional
from fastapi import Depends, HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import IdentityEventType, AdminDeletionAction
from ..models import webhook as webhook_models
from ..common.logger import log
from .admin_service import AdminService


class IdentityWebhookService:
    """
    Applies user.created / user.updated / user.deleted events.
    Failures are logged and acknowledged instead of raised, so the provider
    does not retry an event that can never succeed.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        admin_service: Annotated[AdminService, Depends(AdminService)]
    ):
        self.db = db
        self.admin_service = admin_service

    async def upsert_admin_from_identity(
        self,
        external_id: str,
        name: str,
        email: str,
        phone: Optional[str] = None
    ) -> tuple[db_models.Admins, bool]:
        """
        Creates an inactive, non-super admin for a new identity, or refreshes
        name, email and phone of the existing one. Flags are never touched here.
        Returns (admin, created).
        """
        if not external_id:
            raise ValueError("External identity id is required")
        if not email:
            raise ValueError("No email address found for user")

        admin = await self.admin_service.get_admin_by_external_id(external_id)
        created = False
        if admin is None:
            # an admin provisioned before its identity existed is linked by email
            stmt = select(db_models.Admins).filter(
                db_models.Admins.email == email,
                db_models.Admins.external_id.is_(None)
            )
            admin = (await self.db.execute(stmt)).scalars().first()
            if admin is not None:
                admin.external_id = external_id

        if admin is None:
            admin = db_models.Admins(
                external_id=external_id,
                name=name,
                email=email,
                phone=phone,
                is_active=False,
                super_admin=False
            )
            created = True
        else:
            admin.name = name
            admin.email = email
            admin.phone = phone

        self.db.add(admin)
        await self.db.flush()
        await self.db.refresh(admin)
        log.info(f"Admin {'created' if created else 'updated'} from identity {external_id}: {admin.id}")
        return admin, created

    async def delete_admin_by_external_id(self, external_id: str) -> tuple[db_models.Admins, AdminDeletionAction]:
        """
        Hard-deletes an admin with no history. An admin who instructs classes,
        recorded check-ins or created payments is deactivated instead.
        """
        admin = await self.admin_service.get_admin_by_external_id(external_id)
        if admin is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Admin not found")

        references = 0
        for model, column in (
            (db_models.ClassSessions, db_models.ClassSessions.instructor_id),
            (db_models.AttendanceLogs, db_models.AttendanceLogs.checked_in_by_id),
            (db_models.Payments, db_models.Payments.created_by_id),
        ):
            count_stmt = select(func.count()).select_from(model).filter(column == admin.id)
            references += (await self.db.execute(count_stmt)).scalar_one()

        if references:
            admin.is_active = False
            self.db.add(admin)
            await self.db.flush()
            log.info(f"Admin {admin.id} has {references} related records; deactivated.")
            return admin, AdminDeletionAction.DEACTIVATED

        await self.db.delete(admin)
        await self.db.flush()
        log.info(f"Admin {admin.id} deleted.")
        return admin, AdminDeletionAction.DELETED

    async def handle_event(self, event: webhook_models.IdentityEvent) -> webhook_models.WebhookAck:
        """Dispatches one verified event. Never raises."""
        log.info(f"Identity webhook received: {event.type}")
        try:
            if event.type == IdentityEventType.USER_DELETED.value:
                external_id = str(event.data.get("id") or "")
                admin, action = await self.delete_admin_by_external_id(external_id)
                return webhook_models.WebhookAck(
                    message="Webhook received, admin deletion or deactivation applied",
                    event_type=event.type,
                    action=action.value,
                    admin_id=admin.id
                )

            if event.type in (IdentityEventType.USER_CREATED.value, IdentityEventType.USER_UPDATED.value):
                user = webhook_models.IdentityUserData.model_validate(event.data)
                admin, created = await self.upsert_admin_from_identity(
                    user.id, user.full_name, user.primary_email, user.primary_phone
                )
                return webhook_models.WebhookAck(
                    message=f"User {event.type} webhook processed successfully",
                    event_type=event.type,
                    action="created" if created else "updated",
                    admin_id=admin.id
                )

            return webhook_models.WebhookAck(message="Webhook received", event_type=event.type)

        except Exception as e:
            # acknowledged anyway; the failed unit of work must not be committed
            await self.db.rollback()
            detail = e.detail if isinstance(e, HTTPException) else str(e)
            log.error(f"Identity webhook {event.type} failed: {detail}", exc_info=True)
            return webhook_models.WebhookAck(
                success=False,
                message=f"Webhook received but processing failed: {detail}",
                event_type=event.type
            )
