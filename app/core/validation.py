"""Input validation helpers shared by the API layer."""

import re
from uuid import UUID

from app.core.errors import ValidationError

# Version 1-5 UUIDs with the RFC 4122 variant, as issued by the store.
UUID_REGEX = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def parse_uuid(value: str | None, field: str) -> UUID:
    """Validate an id string against ``UUID_REGEX`` and return it as a UUID.

    Raises:
        ValidationError: If the value is missing or malformed
    """
    if not value or not isinstance(value, str):
        raise ValidationError(f"{field} is required")
    if not UUID_REGEX.match(value):
        raise ValidationError(f"Invalid {field} format")
    return UUID(value)


def parse_optional_uuid(value: str | None, field: str) -> UUID | None:
    if value is None or value == "":
        return None
    return parse_uuid(value, field)


def parse_choice(value: str | None, enum_cls, field: str):
    """Coerce ``value`` into ``enum_cls`` or raise a ValidationError listing the choices."""
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field}. Must be one of: {choices}") from None
