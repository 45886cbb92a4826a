'''
API endpoints for managing Clients (gym members).
'''
from typing import Annotated, Any, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status, Query

from ..database import models as db_models
from ..models import client as client_models
from ..services.security import get_current_admin
from ..services.client_service import ClientService

class ClientsAPI:
    """
    A class to encapsulate CRUD endpoints for Clients.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/api/protected/client",
            tags=["Clients"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "",
                self.create_client,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=client_models.ClientResponse)

        self.router.add_api_route(
                "",
                self.list_clients,
                methods=["GET"],
                response_model=client_models.ClientListResponse)

        self.router.add_api_route(
                "/{client_id}",
                self.get_client,
                methods=["GET"],
                response_model=client_models.ClientResponse)

        self.router.add_api_route(
                "/{client_id}",
                self.update_client,
                methods=["PUT"],
                response_model=client_models.ClientResponse)

    async def create_client(
        self,
        client_data: client_models.ClientCreate,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        client_service: Annotated[ClientService, Depends(ClientService)]
    ) -> Any:
        return await client_service.create_client(client_data)

    async def list_clients(
        self,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        client_service: Annotated[ClientService, Depends(ClientService)],
        include_inactive: Annotated[bool, Query(description="Include deactivated clients")] = True,
        limit: Annotated[Optional[int], Query(ge=1, le=500)] = None,
        offset: Annotated[Optional[int], Query(ge=0)] = None
    ) -> Any:
        """
        Lists clients, active first.
        """
        return await client_service.get_all_clients(include_inactive, limit, offset)

    async def get_client(
        self,
        client_id: UUID,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        client_service: Annotated[ClientService, Depends(ClientService)],
        detailed: bool = False
    ) -> Any:
        """
        Retrieves one client; `detailed=true` adds payments, attendance and groups.
        """
        return await client_service.get_client_by_id(client_id, detailed=detailed)

    async def update_client(
        self,
        client_id: UUID,
        client_data: client_models.ClientUpdate,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        client_service: Annotated[ClientService, Depends(ClientService)]
    ) -> Any:
        return await client_service.update_client(client_id, client_data)

# Instantiate the class and export its router
clients_api = ClientsAPI()
router = clients_api.router
