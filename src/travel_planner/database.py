"""
SQLite database handle shared by the plan and location stores.

Every logical operation opens its own connection so concurrent requests
never share transaction state. Writers use BEGIN IMMEDIATE; readers that
need a consistent view across several statements use a deferred snapshot.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS travel_plans (
	id TEXT PRIMARY KEY,
	title TEXT NOT NULL,
	description TEXT,
	start_date TEXT,
	end_date TEXT,
	budget REAL,
	currency TEXT NOT NULL DEFAULT 'USD',
	is_public INTEGER NOT NULL DEFAULT 0,
	version INTEGER NOT NULL DEFAULT 1,
	created_at TEXT NOT NULL,
	updated_at TEXT NOT NULL,
	CONSTRAINT check_title CHECK (LENGTH(TRIM(title)) > 0 AND LENGTH(title) <= 200),
	CONSTRAINT check_currency CHECK (LENGTH(currency) = 3),
	CONSTRAINT check_version CHECK (version > 0),
	CONSTRAINT check_dates CHECK (end_date IS NULL OR start_date IS NULL OR end_date >= start_date),
	CONSTRAINT check_budget CHECK (budget IS NULL OR budget >= 0)
);

CREATE TABLE IF NOT EXISTS locations (
	id TEXT PRIMARY KEY,
	travel_plan_id TEXT NOT NULL REFERENCES travel_plans(id) ON DELETE CASCADE,
	name TEXT NOT NULL,
	address TEXT,
	latitude REAL,
	longitude REAL,
	visit_order INTEGER,
	arrival_date TEXT,
	departure_date TEXT,
	budget REAL,
	notes TEXT,
	version INTEGER NOT NULL DEFAULT 1,
	created_at TEXT NOT NULL,
	updated_at TEXT NOT NULL,
	CONSTRAINT check_name CHECK (LENGTH(TRIM(name)) > 0 AND LENGTH(name) <= 200),
	CONSTRAINT check_visit_order CHECK (visit_order IS NULL OR visit_order > 0),
	CONSTRAINT check_version CHECK (version > 0),
	CONSTRAINT check_coordinates_lat CHECK (latitude IS NULL OR latitude BETWEEN -90 AND 90),
	CONSTRAINT check_coordinates_lng CHECK (longitude IS NULL OR longitude BETWEEN -180 AND 180),
	CONSTRAINT check_location_dates CHECK (
		departure_date IS NULL OR arrival_date IS NULL OR departure_date >= arrival_date
	),
	CONSTRAINT check_location_budget CHECK (budget IS NULL OR budget >= 0),
	CONSTRAINT unique_plan_order UNIQUE (travel_plan_id, visit_order)
);

CREATE INDEX IF NOT EXISTS idx_travel_plans_updated ON travel_plans(updated_at DESC);
CREATE INDEX IF NOT EXISTS idx_locations_plan_order ON locations(travel_plan_id, visit_order);
"""


def utc_now() -> str:
	"""Current time as a fixed-width UTC ISO-8601 string."""
	return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class Database:
	"""
	SQLite-backed relational store.

	Usage:
		db = Database("data/travel_planner.db")
		await db.init()

		async with db.transaction() as conn:
			await conn.execute("UPDATE ...")
	"""

	def __init__(self, db_path: str = "", busy_timeout: float = 30.0):
		if not db_path:
			from .config import get_config
			config = get_config()
			db_path = str(config.db_path)
			busy_timeout = config.busy_timeout
		self.db_path = Path(db_path)
		self.db_path.parent.mkdir(parents=True, exist_ok=True)
		self.busy_timeout = busy_timeout

	async def init(self) -> None:
		"""Initialize the database schema."""
		async with self.connect() as db:
			await db.execute("PRAGMA journal_mode = WAL")
			await db.executescript(SCHEMA)
		logger.info(f"Database initialized: {self.db_path}")

	@asynccontextmanager
	async def connect(self) -> AsyncIterator[aiosqlite.Connection]:
		"""Open a dedicated connection in autocommit mode."""
		async with aiosqlite.connect(
			str(self.db_path),
			timeout=self.busy_timeout,
			isolation_level=None,
		) as db:
			db.row_factory = aiosqlite.Row
			await db.execute("PRAGMA foreign_keys = ON")
			yield db

	@asynccontextmanager
	async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
		"""
		Run a block as one write transaction.

		The write lock is taken up front, so reads inside the block see
		the state the block's writes will be applied to. Any exception
		rolls the whole block back.
		"""
		async with self.connect() as db:
			await db.execute("BEGIN IMMEDIATE")
			try:
				yield db
			except BaseException:
				if db.in_transaction:
					await db.execute("ROLLBACK")
				raise
			await db.execute("COMMIT")

	@asynccontextmanager
	async def snapshot(self) -> AsyncIterator[aiosqlite.Connection]:
		"""Run several reads against one consistent view of the data."""
		async with self.connect() as db:
			await db.execute("BEGIN DEFERRED")
			try:
				yield db
			finally:
				if db.in_transaction:
					await db.execute("COMMIT")

	async def ping(self) -> bool:
		"""Round-trip a trivial query."""
		async with self.connect() as db:
			async with db.execute("SELECT 1") as cursor:
				row = await cursor.fetchone()
		return row is not None and row[0] == 1
