'''
API endpoints for Client Groups and their membership.
'''
from typing import Annotated, Any, Optional
from uuid import UUID
from fastapi import APIRouter, Body, Depends, status, Query

from ..database import models as db_models
from ..models import group as group_models
from ..models.common import MessageResponse
from ..services.security import get_current_admin
from ..services.group_service import ClientGroupService

class ClientGroupsAPI:
    """
    Group create/edit bodies are validated by the service so every
    problem is reported at once.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/api/protected/client/group",
            tags=["Client Groups"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "",
                self.create_group,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=group_models.GroupResponse)

        self.router.add_api_route(
                "",
                self.list_groups,
                methods=["GET"],
                response_model=group_models.GroupListResponse)

        # Static paths go before '/{group_id}'
        self.router.add_api_route(
                "/summary",
                self.get_summary,
                methods=["GET"],
                response_model=group_models.GroupsSummaryResponse)

        self.router.add_api_route(
                "/name-availability",
                self.check_name_availability,
                methods=["GET"],
                response_model=group_models.NameAvailabilityResponse)

        self.router.add_api_route(
                "/{group_id}",
                self.get_group,
                methods=["GET"],
                response_model=group_models.GroupResponse)

        self.router.add_api_route(
                "/{group_id}",
                self.edit_group,
                methods=["PUT"],
                response_model=group_models.GroupResponse)

        self.router.add_api_route(
                "/{group_id}",
                self.delete_group,
                methods=["DELETE"],
                response_model=MessageResponse)

        self.router.add_api_route(
                "/{group_id}/preview",
                self.preview_group_changes,
                methods=["POST"],
                response_model=group_models.GroupPreviewResponse)

    async def create_group(
        self,
        group_data: Annotated[dict[str, Any], Body()],
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        group_service: Annotated[ClientGroupService, Depends(ClientGroupService)]
    ) -> Any:
        """
        Creates a group with its complete member list.
        """
        return await group_service.create_group(group_data)

    async def list_groups(
        self,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        group_service: Annotated[ClientGroupService, Depends(ClientGroupService)],
        search: Annotated[Optional[str], Query(description="Case-insensitive name filter")] = None,
        include_empty: bool = True,
        include_inactive: bool = True
    ) -> Any:
        return await group_service.get_all_groups(search, include_empty, include_inactive)

    async def get_summary(
        self,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        group_service: Annotated[ClientGroupService, Depends(ClientGroupService)]
    ) -> Any:
        return await group_service.get_groups_summary()

    async def check_name_availability(
        self,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        group_service: Annotated[ClientGroupService, Depends(ClientGroupService)],
        name: Optional[str] = None
    ) -> Any:
        return await group_service.check_name_availability(name)

    async def get_group(
        self,
        group_id: UUID,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        group_service: Annotated[ClientGroupService, Depends(ClientGroupService)]
    ) -> Any:
        return await group_service.get_group_by_id(group_id)

    async def edit_group(
        self,
        group_id: UUID,
        group_data: Annotated[dict[str, Any], Body()],
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        group_service: Annotated[ClientGroupService, Depends(ClientGroupService)]
    ) -> Any:
        """
        Replaces name, description and the complete member list.
        """
        return await group_service.edit_group(group_id, group_data)

    async def delete_group(
        self,
        group_id: UUID,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        group_service: Annotated[ClientGroupService, Depends(ClientGroupService)]
    ) -> Any:
        return await group_service.delete_group(group_id)

    async def preview_group_changes(
        self,
        group_id: UUID,
        group_data: Annotated[dict[str, Any], Body()],
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        group_service: Annotated[ClientGroupService, Depends(ClientGroupService)]
    ) -> Any:
        """
        Read-only: what an edit with this body would change.
        """
        return await group_service.preview_group_changes(group_id, group_data)

# Instantiate the class and export its router
groups_api = ClientGroupsAPI()
router = groups_api.router
