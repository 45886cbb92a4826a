'''

'''
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from ..database.db_enums import PaymentStatus
from .admin import AdminSummary
from .client import ClientSummary

# --- 1. API Input Models ---

class PaymentCreate(BaseModel):
    """
    A new payment. Built from the raw body once the itemized validator passed.
    `prevent_duplicates` rejects a same-amount payment for the client within 24 hours.
    """
    client_id: UUID
    amount: Decimal
    status: PaymentStatus = PaymentStatus.PAID
    payment_date: datetime
    valid_until: datetime
    notes: Optional[str] = None
    prevent_duplicates: bool = False

    @field_validator("payment_date", "valid_until")
    @classmethod
    def drop_timezone(cls, value: datetime) -> datetime:
        # stored naive, wall-clock kept
        return value.replace(tzinfo=None)


class PaymentUpdate(BaseModel):
    """Partial update; the merged result must still have valid_until > payment_date."""
    amount: Optional[Decimal] = Field(None, gt=0, le=Decimal("999999.99"), decimal_places=2)
    status: Optional[PaymentStatus] = None
    payment_date: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("payment_date", "valid_until")
    @classmethod
    def drop_timezone(cls, value: Optional[datetime]) -> Optional[datetime]:
        return value.replace(tzinfo=None) if value else value


# --- 2. API Output Models ---

class PaymentRead(BaseModel):
    id: UUID
    client_id: UUID
    amount: Decimal
    status: PaymentStatus
    payment_date: datetime
    valid_until: datetime
    notes: Optional[str] = None
    created_at: datetime
    client: Optional[ClientSummary] = None
    created_by: Optional[AdminSummary] = None

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def is_expired(self) -> bool:
        return self.valid_until < datetime.now()


class LastPaymentRead(BaseModel):
    """One row of the "last payment per client" aggregation."""
    id: UUID
    client_id: UUID
    client_name: str
    client_username: str
    client_is_active: bool
    amount: Decimal
    status: PaymentStatus
    payment_date: datetime
    valid_until: datetime
    notes: Optional[str] = None
    created_by_id: UUID
    created_by_name: Optional[str] = None

    @computed_field
    @property
    def is_expired(self) -> bool:
        return self.valid_until < datetime.now()


class LastPaymentStats(BaseModel):
    total_payments: int = 0
    paid_count: int = 0
    pending_count: int = 0
    failed_count: int = 0
    total_amount: Decimal = Decimal("0")
    expired_payments: int = 0


class LastPaymentsResponse(BaseModel):
    success: bool = True
    payments: list[LastPaymentRead]
    stats: LastPaymentStats


class PaymentStatsResponse(BaseModel):
    success: bool = True
    total_payments: int
    paid_count: int
    pending_count: int
    failed_count: int
    total_revenue: Decimal
    expired_payments: int
    total_clients: int
    clients_with_payments: int
    clients_without_payments: int


class PaymentResponse(BaseModel):
    success: bool = True
    message: str
    payment: PaymentRead
    client_reactivated: bool = False


class ClientPaymentsResponse(BaseModel):
    success: bool = True
    client: ClientSummary
    count: int
    total_paid: Decimal
    payments: list[PaymentRead]


class OverdueClientRead(BaseModel):
    client: ClientSummary
    last_payment: Optional[PaymentRead] = None
    days_since_last_payment: Optional[int] = None


class OverdueClientsResponse(BaseModel):
    success: bool = True
    days_threshold: int
    count: int
    clients: list[OverdueClientRead]
