'''
Member-facing (v1) endpoints: class browsing and self-service reservations.
'''
from datetime import datetime
from typing import Annotated, Any, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, status, Query

from ..database import models as db_models
from ..models import reservation as reservation_models
from ..services.security import get_current_client
from ..services.reservation_service import ReservationService

class ReservationsAPI:
    """
    Browsing is open; reserving and cancelling need a member token.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/api/v1",
            tags=["Member Classes"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/classes",
                self.list_classes,
                methods=["GET"],
                response_model=reservation_models.PublicClassListResponse)

        self.router.add_api_route(
                "/classes/{class_id}",
                self.get_class,
                methods=["GET"],
                response_model=reservation_models.PublicClassResponse)

        self.router.add_api_route(
                "/classes/{class_id}/reservations",
                self.reserve,
                methods=["POST"],
                response_model=reservation_models.ReservationResult)

        self.router.add_api_route(
                "/classes/{class_id}/reservations/current",
                self.cancel_current,
                methods=["DELETE"],
                response_model=reservation_models.ReservationResult)

        self.router.add_api_route(
                "/reservations/{reservation_id}",
                self.cancel_by_id,
                methods=["DELETE"],
                response_model=reservation_models.ReservationResult)

    async def list_classes(
        self,
        range_from: Annotated[datetime, Query(alias="from")],
        range_to: Annotated[datetime, Query(alias="to")],
        reservation_service: Annotated[ReservationService, Depends(ReservationService)],
        client_id: Optional[UUID] = None
    ) -> Any:
        """
        Classes overlapping [from, to). With `client_id`, each class reports
        whether that member holds a reservation.
        """
        if range_from >= range_to:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="'from' must be before 'to'"
            )
        return await reservation_service.list_classes(range_from, range_to, client_id)

    async def get_class(
        self,
        class_id: UUID,
        reservation_service: Annotated[ReservationService, Depends(ReservationService)],
        client_id: Optional[UUID] = None
    ) -> Any:
        return await reservation_service.get_class(class_id, client_id)

    async def reserve(
        self,
        class_id: UUID,
        current_client: Annotated[db_models.Clients, Depends(get_current_client)],
        reservation_service: Annotated[ReservationService, Depends(ReservationService)]
    ) -> Any:
        return await reservation_service.reserve(class_id, current_client)

    async def cancel_current(
        self,
        class_id: UUID,
        current_client: Annotated[db_models.Clients, Depends(get_current_client)],
        reservation_service: Annotated[ReservationService, Depends(ReservationService)]
    ) -> Any:
        return await reservation_service.cancel_current(class_id, current_client)

    async def cancel_by_id(
        self,
        reservation_id: UUID,
        current_client: Annotated[db_models.Clients, Depends(get_current_client)],
        reservation_service: Annotated[ReservationService, Depends(ReservationService)]
    ) -> Any:
        return await reservation_service.cancel_by_id(reservation_id, current_client)

# Instantiate the class and export its router
reservations_api = ReservationsAPI()
router = reservations_api.router
