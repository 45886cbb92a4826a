'''
API endpoints for Payments.
'''
from datetime import datetime
from typing import Annotated, Any, Optional
from uuid import UUID
from fastapi import APIRouter, Body, Depends, status, Query

from ..database import models as db_models
from ..database.db_enums import PaymentStatus
from ..models import payment as payment_models
from ..models.common import MessageResponse
from ..services.security import get_current_admin
from ..services.payment_service import PaymentService

class PaymentsAPI:
    """
    A class to encapsulate endpoints for payments.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/api/protected/payments",
            tags=["Payments"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "",
                self.list_last_payments,
                methods=["GET"],
                response_model=payment_models.LastPaymentsResponse)

        self.router.add_api_route(
                "",
                self.create_payment,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=payment_models.PaymentResponse)

        self.router.add_api_route(
                "/stats",
                self.get_stats,
                methods=["GET"],
                response_model=payment_models.PaymentStatsResponse)

        self.router.add_api_route(
                "/overdue",
                self.list_overdue_clients,
                methods=["GET"],
                response_model=payment_models.OverdueClientsResponse)

        self.router.add_api_route(
                "/client/{client_id}",
                self.list_client_payments,
                methods=["GET"],
                response_model=payment_models.ClientPaymentsResponse)

        self.router.add_api_route(
                "/{payment_id}",
                self.update_payment,
                methods=["PUT"],
                response_model=payment_models.PaymentResponse)

        self.router.add_api_route(
                "/{payment_id}/mark-paid",
                self.mark_paid,
                methods=["POST"],
                response_model=payment_models.PaymentResponse)

        self.router.add_api_route(
                "/{payment_id}",
                self.delete_payment,
                methods=["DELETE"],
                response_model=MessageResponse)

    async def list_last_payments(
        self,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        payment_service: Annotated[PaymentService, Depends(PaymentService)],
        include_inactive_clients: bool = False,
        status_filter: Annotated[Optional[PaymentStatus], Query(alias="status")] = None,
        valid_until_after: Optional[datetime] = None,
        valid_until_before: Optional[datetime] = None
    ) -> Any:
        """
        The most recent payment of every client, plus summary stats.
        """
        return await payment_service.get_last_payment_per_client(
            include_inactive_clients, status_filter, valid_until_after, valid_until_before
        )

    async def create_payment(
        self,
        payment_data: Annotated[dict[str, Any], Body()],
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        payment_service: Annotated[PaymentService, Depends(PaymentService)]
    ) -> Any:
        return await payment_service.create_payment(payment_data, current_admin)

    async def get_stats(
        self,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        payment_service: Annotated[PaymentService, Depends(PaymentService)]
    ) -> Any:
        return await payment_service.get_payment_stats()

    async def list_overdue_clients(
        self,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        payment_service: Annotated[PaymentService, Depends(PaymentService)],
        days_threshold: Annotated[int, Query(ge=0)] = 30
    ) -> Any:
        return await payment_service.get_clients_without_recent_payments(days_threshold)

    async def list_client_payments(
        self,
        client_id: UUID,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        payment_service: Annotated[PaymentService, Depends(PaymentService)]
    ) -> Any:
        return await payment_service.get_client_payments(client_id)

    async def update_payment(
        self,
        payment_id: UUID,
        payment_data: payment_models.PaymentUpdate,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        payment_service: Annotated[PaymentService, Depends(PaymentService)]
    ) -> Any:
        return await payment_service.update_payment(payment_id, payment_data, current_admin)

    async def mark_paid(
        self,
        payment_id: UUID,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        payment_service: Annotated[PaymentService, Depends(PaymentService)]
    ) -> Any:
        return await payment_service.mark_payment_as_paid(payment_id, current_admin)

    async def delete_payment(
        self,
        payment_id: UUID,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        payment_service: Annotated[PaymentService, Depends(PaymentService)]
    ) -> Any:
        return await payment_service.delete_payment(payment_id, current_admin)

# Instantiate the class and export its router
payments_api = PaymentsAPI()
router = payments_api.router
