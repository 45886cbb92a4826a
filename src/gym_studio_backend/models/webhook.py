'''
Payloads sent by the external identity provider.
'''
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class IdentityEmail(BaseModel):
    id: str
    email_address: str

    model_config = ConfigDict(extra="ignore")


class IdentityPhone(BaseModel):
    id: str
    phone_number: str

    model_config = ConfigDict(extra="ignore")


class IdentityUserData(BaseModel):
    """The `data` object of user.created / user.updated / user.deleted events."""
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email_addresses: list[IdentityEmail] = []
    primary_email_address_id: Optional[str] = None
    phone_numbers: list[IdentityPhone] = []
    primary_phone_number_id: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def full_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or "Unknown User"

    @property
    def primary_email(self) -> Optional[str]:
        for email in self.email_addresses:
            if email.id == self.primary_email_address_id:
                return email.email_address
        return self.email_addresses[0].email_address if self.email_addresses else None

    @property
    def primary_phone(self) -> Optional[str]:
        for phone in self.phone_numbers:
            if phone.id == self.primary_phone_number_id:
                return phone.phone_number
        return self.phone_numbers[0].phone_number if self.phone_numbers else None


class IdentityEvent(BaseModel):
    type: str
    data: dict[str, Any]

    model_config = ConfigDict(extra="ignore")


class WebhookAck(BaseModel):
    success: bool = True
    message: str
    event_type: Optional[str] = None
    action: Optional[str] = None
    admin_id: Optional[UUID] = None
