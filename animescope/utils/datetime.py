"""Datetime parsing helpers for catalog payloads."""

from __future__ import annotations

from datetime import date, datetime


def parse_date(value: str | None) -> date | None:
    """Parse YYYY, YYYY-MM, YYYY-MM-DD or ISO timestamp strings into dates."""
    if not value:
        return None
    try:
        if len(value) == 4:
            return date.fromisoformat(f"{value}-01-01")
        if len(value) == 7:
            return date.fromisoformat(f"{value}-01")
        if "T" in value:
            return datetime.fromisoformat(value).date()
        return date.fromisoformat(value)
    except ValueError:
        return None
