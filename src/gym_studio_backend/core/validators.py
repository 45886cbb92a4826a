'''
Pure payload validators.
Each returns a ValidationResult carrying every problem found, so the caller can
reject a request as a whole before anything is written.
'''
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from .dates import parse_date_string, parse_datetime_string, combine_date_and_time

MAX_PAYMENT_AMOUNT = Decimal("999999.99")
VALID_PAYMENT_STATUSES = ("paid", "pending", "failed")

GROUP_NAME_MIN_LENGTH_CREATE = 3
GROUP_NAME_MIN_LENGTH_EDIT = 2
GROUP_NAME_MAX_LENGTH = 50
GROUP_MAX_MEMBERS = 100
DESCRIPTION_MAX_LENGTH = 500


@dataclass
class ValidationResult:
    is_valid: bool = True
    errors: list[str] = field(default_factory=list)

    def add(self, message: str):
        self.errors.append(message)
        self.is_valid = False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and len(value.strip()) > 0


def validate_date_string(value: Any) -> bool:
    try:
        parse_date_string(value)
        return True
    except ValueError:
        return False


def validate_id_list(ids: Any) -> bool:
    """True when `ids` is a list of non-empty strings."""
    return isinstance(ids, list) and all(_is_non_empty_string(i) for i in ids)


def validate_class_update_data(data: dict[str, Any]) -> ValidationResult:
    """
    Validates the full-replace payload of a class session (scalar fields plus
    an optional attendee roster).
    """
    result = ValidationResult()

    title = data.get("title")
    if not _is_non_empty_string(title):
        result.add("Title is required and must be a non-empty string")
    if isinstance(title, str) and len(title) > 100:
        result.add("Title must not exceed 100 characters")

    description = data.get("description")
    if isinstance(description, str) and len(description) > DESCRIPTION_MAX_LENGTH:
        result.add("Description must not exceed 500 characters")

    location = data.get("location")
    if isinstance(location, str) and len(location) > 100:
        result.add("Location must not exceed 100 characters")

    capacity = data.get("capacity")
    if not _is_number(capacity) or capacity < 1:
        result.add("Capacity must be a positive number")
    elif not isinstance(capacity, int):
        result.add("Capacity must be a whole number")
    elif capacity > 1000:
        result.add("Capacity cannot exceed 1000")

    day = data.get("date")
    if not isinstance(day, str) or not day:
        result.add("Date is required and must be a string in YYYY-MM-DD format")
    elif not validate_date_string(day):
        result.add("Date must be in YYYY-MM-DD format")

    start_time = data.get("start_time")
    end_time = data.get("end_time")
    if not _is_non_empty_string(start_time):
        result.add("Start time is required and must be a valid ISO string")
    if not _is_non_empty_string(end_time):
        result.add("End time is required and must be a valid ISO string")

    if _is_non_empty_string(start_time) and _is_non_empty_string(end_time):
        try:
            anchor = parse_date_string(day) if validate_date_string(day) else None
            if anchor is not None:
                start_dt = combine_date_and_time(anchor, start_time)
                end_dt = combine_date_and_time(anchor, end_time)
            else:
                start_dt = parse_datetime_string(start_time)
                end_dt = parse_datetime_string(end_time)
            if start_dt >= end_dt:
                result.add("End time must be after start time")
        except ValueError:
            result.add("Invalid date/time format")

    if not isinstance(data.get("is_cancelled"), bool):
        result.add("is_cancelled must be a boolean value")

    attendee_ids = data.get("attendee_ids")
    if attendee_ids is not None:
        if not isinstance(attendee_ids, list):
            result.add("attendee_ids must be an array")
        elif not validate_id_list(attendee_ids):
            result.add("All attendee IDs must be valid non-empty strings")

    return result


def validate_payment_data(data: dict[str, Any]) -> ValidationResult:
    """Validates a new payment record."""
    result = ValidationResult()

    if not _is_non_empty_string(data.get("client_id")):
        result.add("Client ID is required and must be a string")

    amount = data.get("amount")
    if not _is_number(amount) or amount <= 0:
        result.add("Amount is required and must be a positive number")
    elif Decimal(str(amount)) > MAX_PAYMENT_AMOUNT:
        result.add("Amount cannot exceed $999,999.99")
    elif Decimal(str(amount)).as_tuple().exponent < -2:
        result.add("Amount cannot have more than 2 decimal places")

    payment_date = data.get("payment_date")
    valid_until = data.get("valid_until")
    if not _is_non_empty_string(payment_date):
        result.add("Payment date is required")
    if not _is_non_empty_string(valid_until):
        result.add("Valid until date is required")

    if data.get("status") not in VALID_PAYMENT_STATUSES:
        result.add("Status must be one of: paid, pending, failed")

    if _is_non_empty_string(payment_date) and _is_non_empty_string(valid_until):
        payment_dt = valid_until_dt = None
        try:
            payment_dt = parse_datetime_string(payment_date)
        except ValueError:
            result.add("Invalid payment date format")
        try:
            valid_until_dt = parse_datetime_string(valid_until)
        except ValueError:
            result.add("Invalid valid until date format")
        if payment_dt is not None and valid_until_dt is not None and valid_until_dt <= payment_dt:
            result.add("Valid until date must be after payment date")

    notes = data.get("notes")
    if notes is not None:
        if not isinstance(notes, str):
            result.add("Notes must be a string")
        elif len(notes) > DESCRIPTION_MAX_LENGTH:
            result.add("Notes cannot exceed 500 characters")

    return result


def validate_group_data(data: dict[str, Any], min_name_length: int = GROUP_NAME_MIN_LENGTH_CREATE) -> ValidationResult:
    """
    Validates a client group payload: name, description and the complete member list.
    Creation uses a 3 character name minimum, edits allow 2.
    """
    result = ValidationResult()

    name = data.get("name")
    if not _is_non_empty_string(name):
        result.add("Group name is required")
    else:
        trimmed = name.strip()
        if len(trimmed) < min_name_length:
            result.add(f"Group name must be at least {min_name_length} characters long")
        if len(trimmed) > GROUP_NAME_MAX_LENGTH:
            result.add("Group name must not exceed 50 characters")

    description = data.get("description")
    if description is not None:
        if not isinstance(description, str):
            result.add("Description must be a string")
        elif len(description.strip()) > DESCRIPTION_MAX_LENGTH:
            result.add("Description must not exceed 500 characters")

    client_ids = data.get("client_ids")
    if not isinstance(client_ids, list):
        result.add("Client IDs must be provided as an array")
    elif len(client_ids) == 0:
        result.add("At least one client must be selected")
    else:
        if not validate_id_list(client_ids):
            result.add("All client IDs must be valid strings")
        elif len(set(client_ids)) > GROUP_MAX_MEMBERS:
            result.add("Group cannot have more than 100 members")

    return result
