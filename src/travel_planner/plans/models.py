"""
Plan Models - Pydantic schemas for travel plans.

Records mirror stored rows; commands are the parsed request payloads
handed to the PlanStore.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..fields import check_budget, check_currency, check_positive_int, required_text, to_columns
from ..locations.models import Location


class TravelPlan(BaseModel):
	"""
	A stored travel plan.

	`version` starts at 1 and grows by exactly one per successful update;
	callers send it back as the optimistic-lock token.
	"""
	id: str = Field(description="Unique plan identifier")
	title: str
	description: Optional[str] = None
	start_date: Optional[date] = None
	end_date: Optional[date] = None
	budget: Optional[float] = None
	currency: str = "USD"
	is_public: bool = False
	version: int = Field(default=1, description="Version number (increments on each update)")

	# Timestamps
	created_at: str
	updated_at: str

	@classmethod
	def from_row(cls, row: Any) -> "TravelPlan":
		data = dict(row)
		data["is_public"] = bool(data["is_public"])
		return cls(**data)


class TravelPlanDetail(TravelPlan):
	"""A plan with its locations attached, in visit order."""
	locations: list[Location] = Field(default_factory=list)


class PlanPage(BaseModel):
	"""One page of plans, most recently updated first."""
	items: list[TravelPlan]
	total: int
	page: int
	limit: int


class TravelPlanCreate(BaseModel):
	"""Payload for creating a plan."""
	model_config = ConfigDict(extra="forbid")

	title: str
	description: Optional[str] = None
	start_date: Optional[date] = None
	end_date: Optional[date] = None
	budget: Optional[Decimal] = None
	currency: str = "USD"
	is_public: bool = False

	@field_validator("title")
	@classmethod
	def _title(cls, v: str) -> str:
		return required_text(v, "Title")

	@field_validator("budget")
	@classmethod
	def _budget(cls, v: Optional[Decimal]) -> Optional[Decimal]:
		return check_budget(v)

	@field_validator("currency")
	@classmethod
	def _currency(cls, v: str) -> str:
		return check_currency(v)

	def to_columns(self) -> dict[str, Any]:
		return to_columns(self.model_dump())


class TravelPlanUpdate(BaseModel):
	"""
	Partial update of a plan.

	Only fields present in the payload are written. `version` is the
	version the caller last read.
	"""
	model_config = ConfigDict(extra="forbid")

	title: Optional[str] = None
	description: Optional[str] = None
	start_date: Optional[date] = None
	end_date: Optional[date] = None
	budget: Optional[Decimal] = None
	currency: Optional[str] = None
	is_public: Optional[bool] = None
	version: Optional[int] = None

	@field_validator("title")
	@classmethod
	def _title(cls, v: Optional[str]) -> str:
		return required_text(v, "Title")

	@field_validator("budget")
	@classmethod
	def _budget(cls, v: Optional[Decimal]) -> Optional[Decimal]:
		return check_budget(v)

	@field_validator("currency")
	@classmethod
	def _currency(cls, v: Optional[str]) -> str:
		return check_currency(v)

	@field_validator("is_public")
	@classmethod
	def _is_public(cls, v: Optional[bool]) -> bool:
		if v is None:
			raise ValueError("is_public must be a boolean")
		return v

	@field_validator("version")
	@classmethod
	def _version(cls, v: Optional[int]) -> Optional[int]:
		return check_positive_int(v, "Version")

	def changes(self) -> dict[str, Any]:
		"""Column values for the fields the caller actually sent."""
		return to_columns(self.model_dump(exclude_unset=True, exclude={"version"}))
