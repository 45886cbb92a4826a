'''
API endpoints for Admin accounts.
Admins are provisioned by the identity webhook; here they are listed and
their flags changed.
'''
from typing import Annotated, Any
from fastapi import APIRouter, Depends

from ..database import models as db_models
from ..models import admin as admin_models
from ..services.security import get_current_admin, get_current_super_admin
from ..services.admin_service import AdminService

class AdminsAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/api/protected/admins",
            tags=["Admins"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "",
                self.list_admins,
                methods=["GET"],
                response_model=admin_models.AdminListResponse)

        self.router.add_api_route(
                "/me",
                self.get_me,
                methods=["GET"],
                response_model=admin_models.AdminRead)

        self.router.add_api_route(
                "",
                self.update_admin_flags,
                methods=["PATCH"],
                response_model=admin_models.AdminResponse)

    async def list_admins(
        self,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        admin_service: Annotated[AdminService, Depends(AdminService)]
    ) -> Any:
        return await admin_service.get_all_admins()

    async def get_me(
        self,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)]
    ) -> Any:
        """Returns the admin behind the bearer token."""
        return admin_models.AdminRead.model_validate(current_admin)

    async def update_admin_flags(
        self,
        flags: admin_models.AdminFlagsUpdate,
        current_admin: Annotated[db_models.Admins, Depends(get_current_super_admin)],
        admin_service: Annotated[AdminService, Depends(AdminService)]
    ) -> Any:
        return await admin_service.update_admin_flags(flags, current_admin)

# Instantiate the class and export its router
admins_api = AdminsAPI()
router = admins_api.router
