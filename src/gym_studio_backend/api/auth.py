'''
API endpoint for member (client) login.
'''
from typing import Annotated
from fastapi import APIRouter, Depends

from ..models import token as token_models
from ..services.auth_service import LoginService

class AuthAPI:
    """
    Issues member tokens. Admin identities come from the external provider.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/api/v1",
            tags=["Authentication"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
            "/auth",
            self.login_client,
            methods=["POST"],
            response_model=token_models.ClientLoginResponse
        )

    async def login_client(
        self,
        credentials: token_models.ClientLoginRequest,
        login_service: Annotated[LoginService, Depends(LoginService)]
    ) -> token_models.ClientLoginResponse:
        """
        Exchanges a username/password for a bearer token.
        """
        return await login_service.login_client(credentials)

# Instantiate the class and export its router
auth_api = AuthAPI()
router = auth_api.router
