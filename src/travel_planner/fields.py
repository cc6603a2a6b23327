"""Field rules and value conversions shared by plan and location models."""

import re
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional

CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
MAX_TEXT_LENGTH = 200
# Largest value SQLite stores in an INTEGER column
MAX_INTEGER = 2**63 - 1


def required_text(value: Optional[str], label: str) -> str:
	"""Non-blank string of at most 200 characters."""
	if value is None or not value.strip():
		raise ValueError(f"{label} is required")
	if len(value) > MAX_TEXT_LENGTH:
		raise ValueError(f"{label} must be at most {MAX_TEXT_LENGTH} characters")
	return value


def check_positive_int(value: Optional[int], label: str) -> Optional[int]:
	if value is None:
		return None
	if value < 1:
		raise ValueError(f"{label} must be positive")
	if value > MAX_INTEGER:
		raise ValueError(f"{label} must be at most {MAX_INTEGER}")
	return value


def check_decimals(value: Optional[Decimal], label: str, places: int) -> Optional[Decimal]:
	if value is None:
		return None
	exponent = value.as_tuple().exponent
	if isinstance(exponent, int) and -exponent > places:
		raise ValueError(f"{label} must have at most {places} decimal places")
	return value


def check_budget(value: Optional[Decimal]) -> Optional[Decimal]:
	if value is None:
		return None
	if value < 0:
		raise ValueError("Budget must be positive")
	return check_decimals(value, "Budget", 2)


def check_currency(value: Optional[str]) -> Optional[str]:
	if value is None:
		raise ValueError("Currency must be 3 uppercase letters")
	if not CURRENCY_RE.match(value):
		raise ValueError("Currency must be 3 uppercase letters")
	return value


def check_range(value: Optional[Decimal], label: str, bound: int) -> Optional[Decimal]:
	if value is None:
		return None
	if not -bound <= value <= bound:
		raise ValueError(f"{label} must be between -{bound} and {bound}")
	return check_decimals(value, label, 6)


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
	"""Normalize a timestamp to UTC; naive values are taken as UTC already."""
	if value is None:
		return None
	if value.tzinfo is None:
		return value.replace(tzinfo=timezone.utc)
	return value.astimezone(timezone.utc)


def to_db_value(value: Any) -> Any:
	"""Convert a validated field value into what SQLite stores."""
	if isinstance(value, bool):
		return int(value)
	if isinstance(value, Decimal):
		return float(value)
	if isinstance(value, datetime):
		return to_utc(value).isoformat(timespec="microseconds")
	if isinstance(value, date):
		return value.isoformat()
	return value


def to_columns(values: dict[str, Any]) -> dict[str, Any]:
	return {key: to_db_value(val) for key, val in values.items()}


def is_ordered(start: Optional[str], end: Optional[str]) -> bool:
	"""True unless both bounds are set and end precedes start.

	Bounds are stored as fixed-format ISO strings, so text order is time order.
	"""
	if start is None or end is None:
		return True
	return end >= start
