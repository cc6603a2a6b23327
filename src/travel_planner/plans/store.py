"""
Plan Store - SQLite-backed travel plan storage.

Features:
- CRUD operations for plans
- Optimistic locking: updates are a single conditional write on `version`
- Paginated listing by last update
- Cascade removal of a plan's locations
"""

import logging
import sqlite3
import uuid
from typing import Any, Optional

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
from ..locations.models import Location
from .models import PlanPage, TravelPlan, TravelPlanCreate, TravelPlanDetail, TravelPlanUpdate

PLAN_NOT_FOUND = "Travel plan not found"
DATE_ORDER_MESSAGE = "End date must be after start date"


class PlanStore:
	"""
	Travel plan storage with versioning.

	Usage:
		store = PlanStore(database)

		plan = await store.create(TravelPlanCreate(title="Lisbon"))

		# Update with optimistic locking
		plan = await store.update(plan.id, TravelPlanUpdate(title="Porto"), expected_version=1)
	"""

	# Columns a caller may change. Update models already forbid unknown fields;
	# this also guards column names for callers that build the dict themselves.
	ALLOWED_UPDATE_COLUMNS = frozenset({
		"title", "description", "start_date", "end_date",
		"budget", "currency", "is_public",
	})

	def __init__(self, db: Database, logger: Optional[logging.Logger] = None):
		self.db = db
		self.logger = logger or logging.getLogger(__name__)

	async def create(self, data: TravelPlanCreate) -> TravelPlan:
		"""
		Create a new plan at version 1.

		Raises:
			ValidationError: If end_date precedes start_date
		"""
		self.logger.debug(f"Creating travel plan title={data.title}")
		values = data.to_columns()
		if not is_ordered(values["start_date"], values["end_date"]):
			raise ValidationError(DATE_ORDER_MESSAGE)

		now = utc_now()
		values.update(id=str(uuid.uuid4()), version=1, created_at=now, updated_at=now)
		columns = ", ".join(values)
		placeholders = ", ".join("?" * len(values))

		async with self.db.transaction() as db:
			try:
				await db.execute(
					f"INSERT INTO travel_plans ({columns}) VALUES ({placeholders})",
					list(values.values()),
				)
			except sqlite3.IntegrityError as e:
				raise translate_integrity_error(e, PLAN_NOT_FOUND) from e
			row = await self._fetch_plan(db, values["id"])

		self.logger.info(f"Created travel plan {values['id']}")
		return TravelPlan.from_row(row)

	async def get(self, plan_id: str) -> TravelPlanDetail:
		"""
		Get a plan with its locations sorted by visit order.

		Raises:
			NotFoundError: If no plan has this id
		"""
		self.logger.debug(f"Fetching travel plan id={plan_id}")
		async with self.db.snapshot() as db:
			row = await self._fetch_plan(db, plan_id)
			if row is None:
				raise NotFoundError(PLAN_NOT_FOUND)
			async with db.execute(
				"""
				SELECT * FROM locations
				WHERE travel_plan_id = ?
				ORDER BY COALESCE(visit_order, 0), created_at
				""",
				(plan_id,),
			) as cursor:
				location_rows = await cursor.fetchall()

		plan = TravelPlan.from_row(row)
		return TravelPlanDetail(
			**plan.model_dump(),
			locations=[Location.from_row(r) for r in location_rows],
		)

	async def list(self, page: int = 1, limit: int = 10) -> PlanPage:
		"""List plans, most recently updated first."""
		if page < 1:
			raise ValidationError("Page must be a positive integer")
		if limit < 1:
			raise ValidationError("Limit must be a positive integer")
		if (page - 1) * limit > MAX_INTEGER or limit > MAX_INTEGER:
			raise ValidationError("Page is out of range")

		async with self.db.snapshot() as db:
			async with db.execute("SELECT COUNT(*) FROM travel_plans") as cursor:
				total = (await cursor.fetchone())[0]
			async with db.execute(
				"""
				SELECT * FROM travel_plans
				ORDER BY updated_at DESC, created_at DESC
				LIMIT ? OFFSET ?
				""",
				(limit, (page - 1) * limit),
			) as cursor:
				rows = await cursor.fetchall()

		return PlanPage(
			items=[TravelPlan.from_row(r) for r in rows],
			total=total,
			page=page,
			limit=limit,
		)

	async def exists(self, plan_id: str, db: Optional[aiosqlite.Connection] = None) -> bool:
		"""Cheap existence check, optionally inside a caller's transaction."""
		if db is not None:
			return await self._exists(db, plan_id)
		async with self.db.connect() as conn:
			return await self._exists(conn, plan_id)

	async def update(
		self,
		plan_id: str,
		changes: TravelPlanUpdate,
		expected_version: Optional[int],
	) -> TravelPlan:
		"""
		Update a plan with optimistic locking.

		The write is one `UPDATE ... WHERE id = ? AND version = ?`; a miss is
		then classified as not-found or a version conflict.

		Args:
			plan_id: Plan ID to update
			changes: Fields to change; unset fields keep their stored value
			expected_version: Version the caller last read

		Returns:
			Updated plan with version = expected_version + 1

		Raises:
			ValidationError: If version is missing or the merged dates are out of order
			NotFoundError: If plan not found
			ConflictError: If version doesn't match (carries current_version)
		"""
		self.logger.debug(f"Updating travel plan id={plan_id} version={expected_version}")
		if expected_version is None:
			raise ValidationError("Version is required")
		if not 1 <= expected_version <= MAX_INTEGER:
			raise ValidationError(f"Version must be between 1 and {MAX_INTEGER}")

		values = changes.changes()
		invalid_columns = set(values) - self.ALLOWED_UPDATE_COLUMNS
		if invalid_columns:
			raise ValidationError(f"Invalid fields for update: {sorted(invalid_columns)}")

		async with self.db.transaction() as db:
			if "start_date" in values or "end_date" in values:
				current = await self._fetch_plan(db, plan_id)
				if current is None:
					raise NotFoundError(PLAN_NOT_FOUND)
				start = values["start_date"] if "start_date" in values else current["start_date"]
				end = values["end_date"] if "end_date" in values else current["end_date"]
				if not is_ordered(start, end):
					raise ValidationError(DATE_ORDER_MESSAGE)

			values["updated_at"] = utc_now()
			set_clause = ", ".join(f"{col} = ?" for col in values)
			try:
				cursor = await db.execute(
					f"""
					UPDATE travel_plans
					SET {set_clause}, version = version + 1
					WHERE id = ? AND version = ?
					""",
					[*values.values(), plan_id, expected_version],
				)
			except sqlite3.IntegrityError as e:
				raise translate_integrity_error(e, PLAN_NOT_FOUND) from e

			if cursor.rowcount == 0:
				current_version = await self._fetch_version(db, plan_id)
				if current_version is None:
					raise NotFoundError(PLAN_NOT_FOUND)
				self.logger.info(
					f"Version conflict on travel plan {plan_id}: "
					f"expected {expected_version}, current {current_version}"
				)
				raise ConflictError(VERSION_CONFLICT_MESSAGE, current_version=current_version)

			row = await self._fetch_plan(db, plan_id)

		plan = TravelPlan.from_row(row)
		self.logger.info(f"Updated travel plan {plan_id} to version {plan.version}")
		return plan

	async def remove(self, plan_id: str) -> None:
		"""
		Delete a plan; its locations go with it through the foreign key cascade.

		Raises:
			NotFoundError: If no plan has this id
		"""
		self.logger.debug(f"Removing travel plan id={plan_id}")
		async with self.db.transaction() as db:
			cursor = await db.execute("DELETE FROM travel_plans WHERE id = ?", (plan_id,))
			if cursor.rowcount == 0:
				raise NotFoundError(PLAN_NOT_FOUND)
		self.logger.info(f"Removed travel plan {plan_id}")

	async def remove_all(self) -> int:
		"""Delete every plan and location. Returns the number of plans deleted."""
		async with self.db.transaction() as db:
			cursor = await db.execute("DELETE FROM travel_plans")
			count = cursor.rowcount
		self.logger.info(f"Removed all travel plans ({count})")
		return count

	async def _fetch_plan(self, db: aiosqlite.Connection, plan_id: str) -> Optional[Any]:
		async with db.execute("SELECT * FROM travel_plans WHERE id = ?", (plan_id,)) as cursor:
			return await cursor.fetchone()

	async def _fetch_version(self, db: aiosqlite.Connection, plan_id: str) -> Optional[int]:
		async with db.execute("SELECT version FROM travel_plans WHERE id = ?", (plan_id,)) as cursor:
			row = await cursor.fetchone()
		return row["version"] if row else None

	async def _exists(self, db: aiosqlite.Connection, plan_id: str) -> bool:
		async with db.execute("SELECT 1 FROM travel_plans WHERE id = ?", (plan_id,)) as cursor:
			return await cursor.fetchone() is not None
