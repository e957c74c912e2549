import math
import re
from typing import Any, Optional

from exceptions import ValidationError

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_MAX_DIGITS = 18
MAX_LOAN_DAYS = 36500


class IdentifierParser:
    """Turns identifiers coming from clients (numbers or text) into ints.

    Text is read like ``parseInt``: an optional sign and leading digits,
    anything after them ignored. ``None`` is returned when nothing numeric
    can be read (or the digit run is too long to be any real id), which
    callers treat as "not found".
    """

    @staticmethod
    def parse(raw: Any) -> Optional[int]:
        if raw is None or isinstance(raw, bool):
            return None
        if isinstance(raw, int):
            return raw
        if isinstance(raw, float):
            return int(raw) if math.isfinite(raw) else None
        m = _LEADING_INT.match(str(raw))
        if not m or len(m.group(1).lstrip("+-")) > _MAX_DIGITS:
            return None
        return int(m.group(1))

    @staticmethod
    def is_missing(raw: Any) -> bool:
        # None, "", 0 and False all count as "not provided"
        return not raw


class FieldValidator:
    """Required-field checks and numeric coercion for incoming payloads."""

    @staticmethod
    def require(message: str, *values: Any) -> None:
        if any(not v for v in values):
            raise ValidationError(message)

    @staticmethod
    def coerce_count(raw: Any, field_name: str = "copies") -> int:
        value = IdentifierParser.parse(raw)
        if value is None:
            raise ValidationError(f"{field_name.capitalize()} must be a whole number")
        if value < 0:
            raise ValidationError(f"{field_name.capitalize()} cannot be negative")
        return value

    @staticmethod
    def coerce_days(raw: Any, default: int) -> int:
        if raw is None:
            return default
        value = IdentifierParser.parse(raw)
        if value is None:
            raise ValidationError("Days to return must be a whole number")
        if abs(value) > MAX_LOAN_DAYS:
            raise ValidationError("Days to return is out of range")
        return value

    @staticmethod
    def parse_flag(raw: Optional[str]) -> Optional[bool]:
        """Query-string booleans: only the literal ``"true"`` means True."""
        if raw is None:
            return None
        return raw == "true"
