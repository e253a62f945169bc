"""Conversion of VirtueMart timestamps to the ISO-8601 strings JTL expects."""

import logging
from datetime import UTC, datetime

from app.utils.error_handler import ValidationException

logger = logging.getLogger(__name__)

SOURCE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_source_date(value: str) -> datetime:
    """
    Parsea una fecha VirtueMart (``YYYY-MM-DD HH:MM:SS``) como UTC.

    Raises:
        ValidationException: Si el valor no tiene el formato canónico
    """
    try:
        return datetime.strptime(value, SOURCE_DATE_FORMAT).replace(tzinfo=UTC)
    except (TypeError, ValueError) as e:
        raise ValidationException(
            message=f"Invalid order date: {value!r}",
            field="created_on",
            invalid_value=value,
            expected_format=SOURCE_DATE_FORMAT,
        ) from e


def iso_date(value: str) -> str:
    """
    Convierte una fecha VirtueMart a ISO-8601 UTC.

    Nunca falla: si el valor no se puede interpretar se registra un warning
    y se usa la hora actual.

    Examples:
        >>> iso_date("2024-01-15 10:30:00")
        '2024-01-15T10:30:00+00:00'
    """
    try:
        return parse_source_date(value).isoformat()
    except ValidationException:
        logger.warning(f"Could not parse order date {value!r}, falling back to current time")
        return datetime.now(UTC).isoformat()
