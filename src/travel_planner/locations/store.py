"""
Location Store - locations nested under a travel plan.

Visit order is assigned inside the inserting transaction, so appended
locations of one plan always get consecutive orders. Collisions with a
caller-chosen order are caught by the (travel_plan_id, visit_order)
unique constraint and reported as conflicts.
"""

import logging
import sqlite3
import uuid
from typing import TYPE_CHECKING, Any, Optional

import aiosqlite

from ..database import Database, utc_now
from ..errors import (
	VERSION_CONFLICT_MESSAGE,
	ConflictError,
	NotFoundError,
	ValidationError,
	translate_integrity_error,
)
from ..fields import MAX_INTEGER, is_ordered
from .models import Location, LocationCreate, LocationUpdate

if TYPE_CHECKING:
	from ..plans.store import PlanStore

LOCATION_NOT_FOUND = "Location not found"
PLAN_NOT_FOUND = "Travel plan not found"
DATE_ORDER_MESSAGE = "Departure date must be after arrival date"


class LocationStore:
	"""
	Location storage with per-plan visit ordering and optimistic locking.

	Appended locations get the plan's highest visit_order plus one. Orders
	are not renumbered on delete, so removing a middle location leaves a
	gap (1, 3, 4 after deleting 2 and appending one more).

	Usage:
		locations = LocationStore(database, plan_store)
		loc = await locations.create(plan_id, LocationCreate(name="Belem Tower"))
		loc = await locations.update(loc.id, LocationUpdate(notes="Go early"), expected_version=1)
	"""

	# Columns a caller may change; see PlanStore.ALLOWED_UPDATE_COLUMNS
	ALLOWED_UPDATE_COLUMNS = frozenset({
		"name", "address", "latitude", "longitude", "visit_order",
		"arrival_date", "departure_date", "budget", "notes",
	})

	def __init__(
		self,
		db: Database,
		plans: "PlanStore",
		logger: Optional[logging.Logger] = None,
	):
		self.db = db
		self.plans = plans
		self.logger = logger or logging.getLogger(__name__)

	async def create(self, plan_id: str, data: LocationCreate) -> Location:
		"""
		Add a location to a plan.

		Without an explicit visit_order the location is appended after the
		plan's highest order.

		Raises:
			ValidationError: If departure precedes arrival
			NotFoundError: If the plan does not exist
			ConflictError: If the visit_order is already taken in this plan
		"""
		values = data.to_columns()
		if not is_ordered(values["arrival_date"], values["departure_date"]):
			raise ValidationError(DATE_ORDER_MESSAGE)

		self.logger.debug(f"Creating location name={data.name} plan={plan_id}")
		now = utc_now()
		values.update(
			id=str(uuid.uuid4()),
			travel_plan_id=plan_id,
			version=1,
			created_at=now,
			updated_at=now,
		)

		async with self.db.transaction() as db:
			if not await self.plans.exists(plan_id, db=db):
				raise NotFoundError(PLAN_NOT_FOUND)

			if values["visit_order"] is None:
				values["visit_order"] = await self._next_visit_order(db, plan_id)

			columns = ", ".join(values)
			placeholders = ", ".join("?" * len(values))
			try:
				await db.execute(
					f"INSERT INTO locations ({columns}) VALUES ({placeholders})",
					list(values.values()),
				)
			except sqlite3.IntegrityError as e:
				error = translate_integrity_error(e, PLAN_NOT_FOUND)
				if isinstance(error, ConflictError):
					self.logger.info(
						f"Visit order {values['visit_order']} already taken in plan {plan_id}"
					)
				raise error from e
			row = await self._fetch(db, values["id"])

		self.logger.info(
			f"Created location {values['id']} in plan {plan_id} at order {values['visit_order']}"
		)
		return Location.from_row(row)

	async def get(self, location_id: str) -> Location:
		"""
		Get a single location.

		Raises:
			NotFoundError: If no location has this id
		"""
		async with self.db.connect() as db:
			row = await self._fetch(db, location_id)
		if row is None:
			raise NotFoundError(LOCATION_NOT_FOUND)
		return Location.from_row(row)

	async def list_for_plan(self, plan_id: str) -> list[Location]:
		"""All locations of a plan in visit order."""
		async with self.db.snapshot() as db:
			if not await self.plans.exists(plan_id, db=db):
				raise NotFoundError(PLAN_NOT_FOUND)
			async with db.execute(
				"""
				SELECT * FROM locations
				WHERE travel_plan_id = ?
				ORDER BY COALESCE(visit_order, 0), created_at
				""",
				(plan_id,),
			) as cursor:
				rows = await cursor.fetchall()
		return [Location.from_row(r) for r in rows]

	async def update(
		self,
		location_id: str,
		changes: LocationUpdate,
		expected_version: Optional[int],
	) -> Location:
		"""
		Update a location with optimistic locking.

		Args:
			location_id: Location to update
			changes: Fields to change; unset fields keep their stored value
			expected_version: Version the caller last read

		Raises:
			ValidationError: If version is missing or merged dates are out of order
			NotFoundError: If location not found
			ConflictError: On version mismatch or a visit_order collision
		"""
		self.logger.debug(f"Updating location id={location_id} version={expected_version}")
		if expected_version is None:
			raise ValidationError("Version is required")
		if not 1 <= expected_version <= MAX_INTEGER:
			raise ValidationError(f"Version must be between 1 and {MAX_INTEGER}")

		values = changes.changes()
		invalid_columns = set(values) - self.ALLOWED_UPDATE_COLUMNS
		if invalid_columns:
			raise ValidationError(f"Invalid fields for update: {sorted(invalid_columns)}")

		async with self.db.transaction() as db:
			current = await self._fetch(db, location_id)
			if current is None:
				raise NotFoundError(LOCATION_NOT_FOUND)

			arrival = values["arrival_date"] if "arrival_date" in values else current["arrival_date"]
			departure = values["departure_date"] if "departure_date" in values else current["departure_date"]
			if not is_ordered(arrival, departure):
				raise ValidationError(DATE_ORDER_MESSAGE)

			if current["version"] != expected_version:
				self.logger.info(
					f"Version conflict on location {location_id}: "
					f"expected {expected_version}, current {current['version']}"
				)
				raise ConflictError(VERSION_CONFLICT_MESSAGE, current_version=current["version"])

			values["updated_at"] = utc_now()
			set_clause = ", ".join(f"{col} = ?" for col in values)
			try:
				cursor = await db.execute(
					f"""
					UPDATE locations
					SET {set_clause}, version = version + 1
					WHERE id = ? AND version = ?
					""",
					[*values.values(), location_id, expected_version],
				)
			except sqlite3.IntegrityError as e:
				raise translate_integrity_error(e, LOCATION_NOT_FOUND) from e

			if cursor.rowcount == 0:
				raise ConflictError(VERSION_CONFLICT_MESSAGE, current_version=current["version"])

			row = await self._fetch(db, location_id)

		location = Location.from_row(row)
		self.logger.info(f"Updated location {location_id} to version {location.version}")
		return location

	async def remove(self, location_id: str) -> None:
		"""
		Delete a location.

		Raises:
			NotFoundError: If no location has this id
		"""
		async with self.db.transaction() as db:
			cursor = await db.execute("DELETE FROM locations WHERE id = ?", (location_id,))
			if cursor.rowcount == 0:
				raise NotFoundError(LOCATION_NOT_FOUND)
		self.logger.info(f"Removed location {location_id}")

	async def _next_visit_order(self, db: aiosqlite.Connection, plan_id: str) -> int:
		async with db.execute(
			"SELECT COALESCE(MAX(visit_order), 0) + 1 FROM locations WHERE travel_plan_id = ?",
			(plan_id,),
		) as cursor:
			row = await cursor.fetchone()
		return row[0]

	async def _fetch(self, db: aiosqlite.Connection, location_id: str) -> Optional[Any]:
		async with db.execute("SELECT * FROM locations WHERE id = ?", (location_id,)) as cursor:
			return await cursor.fetchone()
