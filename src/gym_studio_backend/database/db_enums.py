'''
Static enums mirrored by the database schema and the API models.
'''
import enum


class PaymentStatus(str, enum.Enum):
    PAID = "paid"
    PENDING = "pending"
    FAILED = "failed"


class ClassCreateType(str, enum.Enum):
    SINGLE = "single"
    RECURRING = "recurring"


class WeekDay(str, enum.Enum):
    """Weekday tokens accepted by recurring class creation (Sunday-indexed)."""
    SUN = "Sun"
    MON = "Mon"
    TUE = "Tue"
    WED = "Wed"
    THU = "Thu"
    FRI = "Fri"
    SAT = "Sat"

    @property
    def index(self) -> int:
        return list(WeekDay).index(self)


class IdentityEventType(str, enum.Enum):
    USER_CREATED = "user.created"
    USER_UPDATED = "user.updated"
    USER_DELETED = "user.deleted"


class AdminDeletionAction(str, enum.Enum):
    DELETED = "deleted"
    DEACTIVATED = "deactivated"


class ReservationStatus(str, enum.Enum):
    RESERVED = "reserved"
    NONE = "none"
