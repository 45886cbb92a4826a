'''
Response shapes shared by every endpoint.
'''
from typing import Optional
from pydantic import BaseModel


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Body rendered by the app-level exception handlers."""
    success: bool = False
    error: str
    details: Optional[list[str]] = None
