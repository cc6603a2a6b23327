"""
Error taxonomy shared by the stores and the HTTP layer.

Each error knows the status code the transport renders it with and how
to serialize itself into a response body.
"""

import sqlite3
from typing import Any, Optional


class TravelPlannerError(Exception):
	"""Base class for all domain errors."""

	status_code = 500

	def __init__(self, message: str):
		super().__init__(message)
		self.message = message

	def to_dict(self) -> dict[str, Any]:
		return {"error": self.message}


class ValidationError(TravelPlannerError):
	"""Raised when caller input breaks a business rule. Never mutates state."""

	status_code = 400

	def __init__(self, details: str):
		super().__init__("Validation error")
		self.details = details

	def __str__(self) -> str:
		return f"{self.message}: {self.details}"

	def to_dict(self) -> dict[str, Any]:
		return {"error": self.message, "details": self.details}


class NotFoundError(TravelPlannerError):
	"""Raised when a referenced plan or location does not exist."""

	status_code = 404


class ConflictError(TravelPlannerError):
	"""Raised on version mismatch or a uniqueness collision at write time."""

	status_code = 409

	def __init__(self, message: str, current_version: Optional[int] = None):
		super().__init__(message)
		self.current_version = current_version

	def to_dict(self) -> dict[str, Any]:
		body: dict[str, Any] = {"error": self.message}
		if self.current_version is not None:
			body["current_version"] = self.current_version
		return body


class InternalError(TravelPlannerError):
	"""Opaque storage failure."""

	status_code = 500

	def __init__(self, message: str = "Internal server error"):
		super().__init__(message)


VERSION_CONFLICT_MESSAGE = "Conflict: entity was modified by another request"
ORDER_CONFLICT_MESSAGE = "Order conflict. Please retry."

# Named CHECK constraints in the schema and the detail reported for each
CHECK_MESSAGES = {
	"check_dates": "End date must be after start date",
	"check_location_dates": "Departure date must be after arrival date",
	"check_budget": "Budget must be positive",
	"check_location_budget": "Budget must be positive",
	"check_coordinates_lat": "Latitude must be between -90 and 90",
	"check_coordinates_lng": "Longitude must be between -180 and 180",
	"check_title": "Title is required",
	"check_name": "Name is required",
	"check_currency": "Currency must be 3 uppercase letters",
	"check_version": "Version must be positive",
	"check_visit_order": "Visit order must be positive",
}


def translate_integrity_error(
	exc: sqlite3.IntegrityError,
	not_found_message: str,
) -> TravelPlannerError:
	"""
	Map a constraint failure reported by SQLite onto the error taxonomy.

	The decision is made from the error text alone, the row is not re-read.
	"""
	msg = str(exc)
	if "UNIQUE constraint failed" in msg:
		if "visit_order" in msg:
			return ConflictError(ORDER_CONFLICT_MESSAGE)
		return ConflictError(f"Conflict: {msg}")
	if "FOREIGN KEY constraint failed" in msg:
		return NotFoundError(not_found_message)
	if "CHECK constraint failed" in msg:
		name = msg.split(":", 1)[-1].strip()
		return ValidationError(CHECK_MESSAGES.get(name, f"Constraint violated: {name}"))
	if "NOT NULL constraint failed" in msg:
		return ValidationError(f"Missing required field: {msg.split('.', 1)[-1].strip()}")
	return InternalError()
