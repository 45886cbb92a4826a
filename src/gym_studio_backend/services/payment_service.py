'''

'''
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Annotated, Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import PaymentStatus
from ..models import payment as payment_models
from ..models.client import ClientSummary
from ..models.common import MessageResponse
from ..core.validators import validate_payment_data
from ..common.logger import log
from .client_service import ClientService

DUPLICATE_WINDOW = timedelta(hours=24)


class PaymentService:
    """
    Service for client payments: CRUD, the "last payment per client"
    aggregation and the payment rollups shown on the dashboard.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        client_service: Annotated[ClientService, Depends(ClientService)]
    ):
        self.db = db
        self.client_service = client_service

    # --- Internal Helpers ---

    async def _get_payment_by_id_internal(self, payment_id: UUID, refresh: bool = False) -> db_models.Payments:
        """Fetches a payment with client and creator. Raises 404 if not found."""
        stmt = select(db_models.Payments).options(
            selectinload(db_models.Payments.client),
            selectinload(db_models.Payments.created_by)
        ).filter(db_models.Payments.id == payment_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        payment = result.scalars().first()
        if not payment:
            log.warning(f"Tried to fetch non-existing payment: {payment_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
        return payment

    @staticmethod
    def _ranked_payments(*filters):
        """
        Ranks each client's payments newest first. Filters are applied BEFORE
        ranking, so rank 1 is the latest payment that qualifies.
        """
        return select(
            db_models.Payments.id.label("payment_id"),
            func.row_number().over(
                partition_by=db_models.Payments.client_id,
                order_by=(db_models.Payments.payment_date.desc(), db_models.Payments.created_at.desc())
            ).label("rn")
        ).join(
            db_models.Clients, db_models.Clients.id == db_models.Payments.client_id
        ).filter(*filters).subquery()

    async def _latest_payments(self, *filters) -> list[tuple[db_models.Payments, db_models.Clients, Optional[str]]]:
        ranked = self._ranked_payments(*filters)
        stmt = select(
            db_models.Payments,
            db_models.Clients,
            db_models.Admins.name
        ).options(
            selectinload(db_models.Payments.client),
            selectinload(db_models.Payments.created_by)
        ).join(
            ranked, and_(ranked.c.payment_id == db_models.Payments.id, ranked.c.rn == 1)
        ).join(
            db_models.Clients, db_models.Clients.id == db_models.Payments.client_id
        ).outerjoin(
            db_models.Admins, db_models.Admins.id == db_models.Payments.created_by_id
        ).order_by(db_models.Clients.name)
        result = await self.db.execute(stmt)
        return [tuple(row) for row in result.all()]

    # --- Aggregation ---

    async def get_last_payment_per_client(
        self,
        include_inactive_clients: bool = False,
        status_filter: Optional[PaymentStatus] = None,
        valid_until_after: Optional[datetime] = None,
        valid_until_before: Optional[datetime] = None
    ) -> payment_models.LastPaymentsResponse:
        """
        Exactly one row per client that has at least one qualifying payment:
        the one with the latest payment_date. Clients with none are absent.
        """
        log.info(
            f"Fetching last payment per client (inactive={include_inactive_clients}, "
            f"status={status_filter}, after={valid_until_after}, before={valid_until_before})."
        )
        filters = []
        if not include_inactive_clients:
            filters.append(db_models.Clients.is_active.is_(True))
        if status_filter is not None:
            filters.append(db_models.Payments.status == PaymentStatus(status_filter).value)
        if valid_until_after is not None:
            filters.append(db_models.Payments.valid_until >= valid_until_after.replace(tzinfo=None))
        if valid_until_before is not None:
            filters.append(db_models.Payments.valid_until <= valid_until_before.replace(tzinfo=None))

        try:
            rows = await self._latest_payments(*filters)
        except Exception as e:
            log.error(f"Error in get_last_payment_per_client: {e}", exc_info=True)
            raise

        payments = [
            payment_models.LastPaymentRead(
                id=payment.id,
                client_id=client.id,
                client_name=client.name,
                client_username=client.username,
                client_is_active=client.is_active,
                amount=payment.amount,
                status=payment.status,
                payment_date=payment.payment_date,
                valid_until=payment.valid_until,
                notes=payment.notes,
                created_by_id=payment.created_by_id,
                created_by_name=admin_name
            )
            for payment, client, admin_name in rows
        ]

        now = datetime.now()
        stats = payment_models.LastPaymentStats(
            total_payments=len(payments),
            paid_count=sum(1 for p in payments if p.status == PaymentStatus.PAID),
            pending_count=sum(1 for p in payments if p.status == PaymentStatus.PENDING),
            failed_count=sum(1 for p in payments if p.status == PaymentStatus.FAILED),
            total_amount=sum((p.amount for p in payments if p.status == PaymentStatus.PAID), Decimal("0")),
            expired_payments=sum(1 for p in payments if p.valid_until < now)
        )
        return payment_models.LastPaymentsResponse(payments=payments, stats=stats)

    async def get_payment_stats(self) -> payment_models.PaymentStatsResponse:
        """Rollup over every payment on record."""
        by_status_stmt = select(
            db_models.Payments.status,
            func.count(db_models.Payments.id),
            func.coalesce(func.sum(db_models.Payments.amount), 0)
        ).group_by(db_models.Payments.status)
        by_status = {row[0]: (row[1], row[2]) for row in (await self.db.execute(by_status_stmt)).all()}

        expired_stmt = select(func.count(db_models.Payments.id)).filter(
            db_models.Payments.valid_until < datetime.now()
        )
        expired = (await self.db.execute(expired_stmt)).scalar_one()

        total_clients = (await self.db.execute(select(func.count(db_models.Clients.id)))).scalar_one()
        clients_with_payments = (await self.db.execute(
            select(func.count(func.distinct(db_models.Payments.client_id)))
        )).scalar_one()

        def count_for(payment_status: PaymentStatus) -> int:
            return by_status.get(payment_status.value, (0, 0))[0]

        return payment_models.PaymentStatsResponse(
            total_payments=sum(count for count, _ in by_status.values()),
            paid_count=count_for(PaymentStatus.PAID),
            pending_count=count_for(PaymentStatus.PENDING),
            failed_count=count_for(PaymentStatus.FAILED),
            total_revenue=Decimal(str(by_status.get(PaymentStatus.PAID.value, (0, 0))[1])),
            expired_payments=expired,
            total_clients=total_clients,
            clients_with_payments=clients_with_payments,
            clients_without_payments=total_clients - clients_with_payments
        )

    async def get_client_payments(self, client_id: UUID) -> payment_models.ClientPaymentsResponse:
        client = await self.client_service._get_client_by_id_internal(client_id)
        stmt = select(db_models.Payments).options(
            selectinload(db_models.Payments.client),
            selectinload(db_models.Payments.created_by)
        ).filter(
            db_models.Payments.client_id == client_id
        ).order_by(db_models.Payments.payment_date.desc())
        payments = (await self.db.execute(stmt)).scalars().all()

        reads = [payment_models.PaymentRead.model_validate(p) for p in payments]
        return payment_models.ClientPaymentsResponse(
            client=ClientSummary.model_validate(client),
            count=len(reads),
            total_paid=sum((p.amount for p in reads if p.status == PaymentStatus.PAID), Decimal("0")),
            payments=reads
        )

    async def get_clients_without_recent_payments(
        self,
        days_threshold: int = 30,
        now: Optional[datetime] = None
    ) -> payment_models.OverdueClientsResponse:
        """
        Active clients whose latest payment is older than `days_threshold` days,
        or who never paid. Clients that never paid are listed first.
        """
        now = now or datetime.now()
        cutoff = now - timedelta(days=days_threshold)

        latest = {client.id: payment for payment, client, _ in await self._latest_payments()}
        active_stmt = select(db_models.Clients).filter(
            db_models.Clients.is_active.is_(True)
        ).order_by(db_models.Clients.name)
        active_clients = (await self.db.execute(active_stmt)).scalars().all()

        overdue: list[payment_models.OverdueClientRead] = []
        for client in active_clients:
            last_payment = latest.get(client.id)
            if last_payment is not None and last_payment.payment_date >= cutoff:
                continue
            overdue.append(payment_models.OverdueClientRead(
                client=ClientSummary.model_validate(client),
                last_payment=payment_models.PaymentRead.model_validate(last_payment) if last_payment else None,
                days_since_last_payment=(now - last_payment.payment_date).days if last_payment else None
            ))
        overdue.sort(key=lambda item: item.last_payment is not None)

        return payment_models.OverdueClientsResponse(
            days_threshold=days_threshold,
            count=len(overdue),
            clients=overdue
        )

    # --- Writes ---

    async def create_payment(self, payment_data: dict, current_admin: db_models.Admins) -> payment_models.PaymentResponse:
        """
        Records a payment. An inactive client is reactivated by it.
        """
        log.info(f"Admin {current_admin.id} attempting to create payment for client {payment_data.get('client_id')}.")
        try:
            # 1. Validate
            validation = validate_payment_data(payment_data)
            if not validation.is_valid:
                log.warning(f"Payment validation failed: {validation.errors}")
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail={"error": "Validation failed", "details": validation.errors}
                )
            data = payment_models.PaymentCreate.model_validate(payment_data)

            # 2. Referenced client
            client = await self.client_service._get_client_by_id_internal(data.client_id)

            # 3. Optional duplicate guard
            if data.prevent_duplicates:
                duplicate_stmt = select(db_models.Payments.id).filter(
                    db_models.Payments.client_id == data.client_id,
                    db_models.Payments.amount == data.amount,
                    db_models.Payments.payment_date >= data.payment_date - DUPLICATE_WINDOW,
                    db_models.Payments.payment_date <= data.payment_date + DUPLICATE_WINDOW
                )
                if (await self.db.execute(duplicate_stmt)).first():
                    raise HTTPException(
                        status_code=status.HTTP_409_CONFLICT,
                        detail="A payment with these details already exists"
                    )

            # 4. Create
            new_payment = db_models.Payments(
                client_id=data.client_id,
                amount=data.amount,
                status=data.status.value,
                payment_date=data.payment_date,
                valid_until=data.valid_until,
                notes=data.notes.strip() if data.notes and data.notes.strip() else None,
                created_by_id=current_admin.id
            )
            self.db.add(new_payment)

            reactivated = False
            if not client.is_active:
                client.is_active = True
                reactivated = True
                log.info(f"Client {client.id} reactivated by new payment.")

            await self.db.flush()
            created = await self._get_payment_by_id_internal(new_payment.id, refresh=True)

            return payment_models.PaymentResponse(
                message="Payment created successfully",
                payment=payment_models.PaymentRead.model_validate(created),
                client_reactivated=reactivated
            )
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error in create_payment: {e}", exc_info=True)
            raise

    async def update_payment(
        self,
        payment_id: UUID,
        data: payment_models.PaymentUpdate,
        current_admin: db_models.Admins
    ) -> payment_models.PaymentResponse:
        log.info(f"Admin {current_admin.id} attempting to update payment {payment_id}.")
        try:
            # 1. Fetch
            payment = await self._get_payment_by_id_internal(payment_id)

            # 2. Merge and validate
            update_data = data.model_dump(exclude_unset=True)
            if not update_data:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields provided to update.")

            payment_date = update_data.get("payment_date") or payment.payment_date
            valid_until = update_data.get("valid_until") or payment.valid_until
            if valid_until <= payment_date:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Valid until date must be after payment date"
                )

            # 3. Apply
            for key, value in update_data.items():
                if key == "status" and value is not None:
                    setattr(payment, key, value.value)
                elif key == "notes":
                    setattr(payment, key, value.strip() if value and value.strip() else None)
                elif value is not None:
                    setattr(payment, key, value)

            self.db.add(payment)
            await self.db.flush()
            updated = await self._get_payment_by_id_internal(payment_id, refresh=True)

            return payment_models.PaymentResponse(
                message="Payment updated successfully",
                payment=payment_models.PaymentRead.model_validate(updated)
            )
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error in update_payment for payment {payment_id}: {e}", exc_info=True)
            raise

    async def mark_payment_as_paid(self, payment_id: UUID, current_admin: db_models.Admins) -> payment_models.PaymentResponse:
        return await self.update_payment(
            payment_id,
            payment_models.PaymentUpdate(status=PaymentStatus.PAID),
            current_admin
        )

    async def delete_payment(self, payment_id: UUID, current_admin: db_models.Admins) -> MessageResponse:
        log.info(f"Admin {current_admin.id} attempting to delete payment {payment_id}.")
        payment = await self._get_payment_by_id_internal(payment_id)
        await self.db.delete(payment)
        await self.db.flush()
        return MessageResponse(message="Payment deleted successfully")
