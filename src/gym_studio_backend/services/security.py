'''
Token handling and the identity-resolution dependencies.
Admin tokens carry the external identity id as 'sub'; member tokens carry the client id.
'''
from datetime import datetime, timedelta, timezone
from typing import Optional, Annotated
from uuid import UUID
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from ..common.config import settings
from ..models.token import TokenPayload
from ..common.logger import log
from ..database import models as db_models
from .admin_service import AdminService
from .client_service import ClientService

# --- JWT Handling ---
class JWTHandler:
    @staticmethod
    def create_access_token(
        subject: str,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

        expire = datetime.now(timezone.utc) + expires_delta
        to_encode = {"sub": str(subject), "exp": expire}
        encoded_jwt = jwt.encode(
            to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM
        )
        return encoded_jwt

    @staticmethod
    def decode_token(token: str) -> TokenPayload | None:
        try:
            payload = jwt.decode(
                token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
            )
            return TokenPayload(**payload)
        except (JWTError, ValueError) as e: # Catch Pydantic validation errors too
            log.warning(f"JWT decode/validation error: {e}")
            return None

# --- Dependencies ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth")

def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )

async def get_current_admin(
    token: Annotated[str, Depends(oauth2_scheme)],
    admin_service: Annotated[AdminService, Depends(AdminService)]
    ) -> db_models.Admins:
    """
    Resolves the bearer token to an active internal Admin.
    401 for a missing/invalid token, 403 when the identity is not an admin
    or the admin account is deactivated.
    """
    token_data = JWTHandler.decode_token(token)
    if not token_data or not token_data.sub:
        log.warning("JWT decode failed or invalid token structure.")
        raise _credentials_exception()

    admin = await admin_service.get_admin_by_external_id(token_data.sub)

    if admin is None:
        log.warning(f"Identity '{token_data.sub}' has no admin record.")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin not found")

    if not admin.is_active:
        log.warning(f"Admin '{admin.id}' is not active.")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account deactivated")

    log.info(f"JWT verified successfully for admin: {admin.email}")
    return admin

async def get_current_super_admin(
    current_admin: Annotated[db_models.Admins, Depends(get_current_admin)]
    ) -> db_models.Admins:
    if not current_admin.super_admin:
        log.warning(f"Admin {current_admin.id} attempted a super-admin action.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient privileges. Super admin access required."
        )
    return current_admin

async def get_current_client(
    token: Annotated[str, Depends(oauth2_scheme)],
    client_service: Annotated[ClientService, Depends(ClientService)]
    ) -> db_models.Clients:
    """Resolves a member token to an active Client."""
    token_data = JWTHandler.decode_token(token)
    if not token_data or not token_data.sub:
        raise _credentials_exception()

    try:
        client_id = UUID(token_data.sub)
    except ValueError:
        raise _credentials_exception("Invalid user")

    client = await client_service.get_client_orm(client_id)
    if client is None:
        raise _credentials_exception("Invalid user")
    if not client.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return client
