'''
API endpoints for managing Class Sessions and their attendance.
'''
from typing import Annotated, Any
from uuid import UUID
from fastapi import APIRouter, Body, Depends, status, Query

from ..database import models as db_models
from ..models import classes as class_models
from ..services.security import get_current_admin
from ..services.class_service import ClassService

class ClassesAPI:
    """
    A class to encapsulate endpoints for class sessions.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/api/protected/classes",
            tags=["Classes"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "",
                self.create_classes,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=class_models.ClassCreateResponse)

        self.router.add_api_route(
                "",
                self.list_classes,
                methods=["GET"],
                response_model=class_models.ClassRangeResponse)

        self.router.add_api_route(
                "/week",
                self.list_week_classes,
                methods=["GET"],
                response_model=class_models.WeekClassesResponse)

        self.router.add_api_route(
                "/{class_id}",
                self.get_class,
                methods=["GET"],
                response_model=class_models.ClassResponse)

        self.router.add_api_route(
                "/{class_id}",
                self.update_class_with_attendees,
                methods=["PUT"],
                response_model=class_models.ClassUpdateResponse)

        self.router.add_api_route(
                "/{class_id}",
                self.patch_class,
                methods=["PATCH"],
                response_model=class_models.ClassResponse)

        self.router.add_api_route(
                "/{class_id}/attendance",
                self.check_in_client,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=class_models.CheckInResponse)

    async def create_classes(
        self,
        class_data: Annotated[dict[str, Any], Body()],
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        class_service: Annotated[ClassService, Depends(ClassService)]
    ) -> Any:
        """
        Creates a single class or a weekly recurring series.
        The body's `type` field ('single' | 'recurring') selects the shape.
        """
        return await class_service.create_classes(class_data, current_admin)

    async def list_classes(
        self,
        start_date: Annotated[str, Query(description="YYYY-MM-DD")],
        end_date: Annotated[str, Query(description="YYYY-MM-DD")],
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        class_service: Annotated[ClassService, Depends(ClassService)]
    ) -> Any:
        return await class_service.get_classes_by_date_range(start_date, end_date)

    async def list_week_classes(
        self,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        class_service: Annotated[ClassService, Depends(ClassService)],
        offset: Annotated[int, Query(description="Weeks relative to the current one")] = 0
    ) -> Any:
        return await class_service.get_week_classes(offset)

    async def get_class(
        self,
        class_id: UUID,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        class_service: Annotated[ClassService, Depends(ClassService)]
    ) -> Any:
        return await class_service.get_class_by_id(class_id)

    async def update_class_with_attendees(
        self,
        class_id: UUID,
        class_data: Annotated[dict[str, Any], Body()],
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        class_service: Annotated[ClassService, Depends(ClassService)]
    ) -> Any:
        """
        Replaces all class fields and, when `attendee_ids` is present, the roster.
        """
        return await class_service.update_class_with_attendees(class_id, class_data, current_admin)

    async def patch_class(
        self,
        class_id: UUID,
        class_data: class_models.ClassPatch,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        class_service: Annotated[ClassService, Depends(ClassService)]
    ) -> Any:
        return await class_service.update_class(class_id, class_data, current_admin)

    async def check_in_client(
        self,
        class_id: UUID,
        check_in: class_models.CheckInRequest,
        current_admin: Annotated[db_models.Admins, Depends(get_current_admin)],
        class_service: Annotated[ClassService, Depends(ClassService)]
    ) -> Any:
        return await class_service.check_in_client(class_id, check_in.client_id, current_admin)

# Instantiate the class and export its router
classes_api = ClassesAPI()
router = classes_api.router
