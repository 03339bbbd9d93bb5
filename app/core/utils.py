from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal


def money(value: Decimal | str | int | None) -> str | None:
    if value is None:
        return None
    return f"{Decimal(value):.2f}"


def iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value else None
