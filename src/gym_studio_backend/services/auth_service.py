'''

'''
from typing import Annotated
from fastapi import Depends

from .security import JWTHandler
from .client_service import ClientService
from ..models import token as token_models
from ..common.logger import log

class LoginService:
    """
    Service for member (client) login.
    Admins authenticate with the external identity provider instead.
    """
    def __init__(
        self,
        client_service: Annotated[ClientService, Depends(ClientService)]
    ):
        self.client_service = client_service

    async def login_client(self, data: token_models.ClientLoginRequest) -> token_models.ClientLoginResponse:
        log.info(f"Attempting login for client: {data.username}")

        client = await self.client_service.authenticate_client(data.username, data.password)

        access_token = JWTHandler.create_access_token(subject=str(client.id))
        log.info(f"Login successful for client: {client.username}")

        return token_models.ClientLoginResponse(
            access_token=access_token,
            token_type="bearer",
            client_id=client.id
        )
