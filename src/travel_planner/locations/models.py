"""Location Models - Pydantic schemas for stops within a travel plan."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..fields import check_budget, check_positive_int, check_range, required_text, to_columns, to_utc


class Location(BaseModel):
	"""A stored location. `visit_order` is unique within its plan."""
	id: str
	travel_plan_id: str
	name: str
	address: Optional[str] = None
	latitude: Optional[float] = None
	longitude: Optional[float] = None
	visit_order: Optional[int] = None
	arrival_date: Optional[datetime] = None
	departure_date: Optional[datetime] = None
	budget: Optional[float] = None
	notes: Optional[str] = None
	version: int = 1
	created_at: str
	updated_at: str

	@classmethod
	def from_row(cls, row: Any) -> "Location":
		return cls(**dict(row))


class _LocationFields(BaseModel):
	model_config = ConfigDict(extra="forbid")

	address: Optional[str] = None
	latitude: Optional[Decimal] = None
	longitude: Optional[Decimal] = None
	arrival_date: Optional[datetime] = None
	departure_date: Optional[datetime] = None
	budget: Optional[Decimal] = None
	notes: Optional[str] = None

	@field_validator("latitude")
	@classmethod
	def _latitude(cls, v: Optional[Decimal]) -> Optional[Decimal]:
		return check_range(v, "Latitude", 90)

	@field_validator("longitude")
	@classmethod
	def _longitude(cls, v: Optional[Decimal]) -> Optional[Decimal]:
		return check_range(v, "Longitude", 180)

	@field_validator("arrival_date", "departure_date")
	@classmethod
	def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
		return to_utc(v)

	@field_validator("budget")
	@classmethod
	def _budget(cls, v: Optional[Decimal]) -> Optional[Decimal]:
		return check_budget(v)


class LocationCreate(_LocationFields):
	"""Payload for adding a location to a plan. Omit `visit_order` to append."""
	name: str
	visit_order: Optional[int] = Field(default=None, description="Auto-assigned if omitted")

	@field_validator("name")
	@classmethod
	def _name(cls, v: str) -> str:
		return required_text(v, "Name")

	@field_validator("visit_order")
	@classmethod
	def _visit_order(cls, v: Optional[int]) -> Optional[int]:
		return check_positive_int(v, "Visit order")

	def to_columns(self) -> dict[str, Any]:
		return to_columns(self.model_dump())


class LocationUpdate(_LocationFields):
	"""Partial update of a location, guarded by `version`."""
	name: Optional[str] = None
	visit_order: Optional[int] = None
	version: Optional[int] = None

	@field_validator("name")
	@classmethod
	def _name(cls, v: Optional[str]) -> str:
		return required_text(v, "Name")

	@field_validator("visit_order")
	@classmethod
	def _visit_order(cls, v: Optional[int]) -> int:
		if v is None:
			raise ValueError("Visit order must be positive")
		return check_positive_int(v, "Visit order")

	@field_validator("version")
	@classmethod
	def _version(cls, v: Optional[int]) -> Optional[int]:
		return check_positive_int(v, "Version")

	def changes(self) -> dict[str, Any]:
		"""Column values for the fields the caller actually sent."""
		return to_columns(self.model_dump(exclude_unset=True, exclude={"version"}))
