'''

'''
from uuid import UUID
from pydantic import BaseModel, Field
from datetime import datetime

class Token(BaseModel):
    access_token: str
    token_type: str

class TokenPayload(BaseModel):
    sub: str # 'sub' is the external identity id (admins) or the client id (members)
    exp: datetime

class ClientLoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

class ClientLoginResponse(Token):
    success: bool = True
    message: str = "Login successful"
    client_id: UUID
