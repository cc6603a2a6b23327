"""Shared test fixtures and helpers for travel-planner tests."""

from pathlib import Path

from travel_planner.database import Database
from travel_planner.locations.store import LocationStore
from travel_planner.plans.models import TravelPlanCreate
from travel_planner.plans.store import PlanStore


async def make_stores(tmp_path: Path) -> tuple[Database, PlanStore, LocationStore]:
	"""Create an initialized database with both stores on top of it."""
	db = Database(str(tmp_path / "test.db"), busy_timeout=10.0)
	await db.init()
	plans = PlanStore(db)
	return db, plans, LocationStore(db, plans)


def make_plan_data(
	title: str = "Lisbon Weekend",
	start_date: str | None = "2025-06-01",
	end_date: str | None = "2025-06-05",
	budget: str | None = "1000.00",
) -> TravelPlanCreate:
	"""Create a plan payload with realistic content for testing."""
	return TravelPlanCreate(
		title=title,
		description="Pasteis de nata and trams",
		start_date=start_date,
		end_date=end_date,
		budget=budget,
		currency="EUR",
	)
