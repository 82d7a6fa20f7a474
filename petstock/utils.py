from __future__ import annotations

import calendar
import numbers
import uuid
from datetime import datetime, date, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from petstock.errors import ValidationError


def iso_now() -> str:
    # Use UTC ISO timestamps for consistency.
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


def to_date(value: Any, field: str = "date") -> date:
    """Accepts a date, a datetime or a YYYY-MM-DD string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    raise ValidationError(f"{field} must be a date (YYYY-MM-DD).")


def to_optional_date(value: Any, field: str = "date") -> Optional[date]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return to_date(value, field)


def to_money(value: Any, field: str = "Price") -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number.")
    try:
        # str() first so floats like 0.1 keep their shortest repr
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number.")
    if not d.is_finite():
        raise ValidationError(f"{field} must be a number.")
    return d


def to_int(value: Any, field: str = "Quantity") -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a whole number.")
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"{field} must be a whole number.")


def clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s if s else None


def month_bounds(day: date) -> tuple[date, date]:
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def days_between(start: date, end: date) -> list[date]:
    n = (end - start).days
    return [start + timedelta(days=i) for i in range(n + 1)]
