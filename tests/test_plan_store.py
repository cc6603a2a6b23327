"""Tests for the PlanStore: CRUD, pagination and the optimistic update protocol."""

from datetime import date
from pathlib import Path

import pytest
import pytest_asyncio

from tests.helpers import make_plan_data, make_stores
from travel_planner.errors import ConflictError, NotFoundError, ValidationError
from travel_planner.locations.models import LocationCreate
from travel_planner.plans.models import TravelPlanCreate, TravelPlanUpdate

MISSING_ID = "00000000-0000-4000-8000-000000000000"


@pytest_asyncio.fixture
async def stores(tmp_path: Path):
	return await make_stores(tmp_path)


@pytest_asyncio.fixture
async def plans(stores):
	return stores[1]


@pytest_asyncio.fixture
async def locations(stores):
	return stores[2]


class TestPlanCreate:
	"""Tests for plan creation."""

	@pytest.mark.asyncio
	async def test_create_starts_at_version_one(self, plans):
		plan = await plans.create(make_plan_data())

		assert plan.id
		assert plan.version == 1
		assert plan.title == "Lisbon Weekend"
		assert plan.currency == "EUR"
		assert plan.budget == pytest.approx(1000.0)
		assert plan.start_date == date(2025, 6, 1)
		assert plan.created_at == plan.updated_at

	@pytest.mark.asyncio
	async def test_create_applies_defaults(self, plans):
		plan = await plans.create(TravelPlanCreate(title="Trip"))

		assert plan.currency == "USD"
		assert plan.is_public is False
		assert plan.description is None
		assert plan.budget is None

	@pytest.mark.asyncio
	async def test_create_rejects_end_before_start(self, plans):
		with pytest.raises(ValidationError) as exc:
			await plans.create(make_plan_data(start_date="2025-06-10", end_date="2025-06-01"))

		assert exc.value.details == "End date must be after start date"
		page = await plans.list()
		assert page.total == 0

	@pytest.mark.asyncio
	async def test_create_allows_same_day_trip(self, plans):
		plan = await plans.create(make_plan_data(start_date="2025-06-01", end_date="2025-06-01"))
		assert plan.end_date == plan.start_date


class TestPlanGet:
	"""Tests for fetching a plan with its locations."""

	@pytest.mark.asyncio
	async def test_get_missing_plan_raises(self, plans):
		with pytest.raises(NotFoundError):
			await plans.get(MISSING_ID)

	@pytest.mark.asyncio
	async def test_get_attaches_locations_in_visit_order(self, plans, locations):
		plan = await plans.create(make_plan_data())
		await locations.create(plan.id, LocationCreate(name="Third", visit_order=3))
		await locations.create(plan.id, LocationCreate(name="First", visit_order=1))
		await locations.create(plan.id, LocationCreate(name="Second", visit_order=2))

		detail = await plans.get(plan.id)

		assert [loc.name for loc in detail.locations] == ["First", "Second", "Third"]
		assert [loc.visit_order for loc in detail.locations] == [1, 2, 3]

	@pytest.mark.asyncio
	async def test_get_plan_without_locations(self, plans):
		plan = await plans.create(make_plan_data())
		detail = await plans.get(plan.id)
		assert detail.locations == []
		assert detail.version == 1


class TestPlanList:
	"""Tests for paginated listing."""

	@pytest.mark.asyncio
	async def test_list_paginates_with_total(self, plans):
		for i in range(5):
			await plans.create(TravelPlanCreate(title=f"Trip {i}"))

		first = await plans.list(page=1, limit=2)
		last = await plans.list(page=3, limit=2)

		assert first.total == 5
		assert len(first.items) == 2
		assert first.page == 1
		assert first.limit == 2
		assert len(last.items) == 1

	@pytest.mark.asyncio
	async def test_list_orders_by_last_update(self, plans):
		oldest = await plans.create(TravelPlanCreate(title="Oldest"))
		await plans.create(TravelPlanCreate(title="Middle"))
		await plans.create(TravelPlanCreate(title="Newest"))

		await plans.update(oldest.id, TravelPlanUpdate(title="Touched"), expected_version=1)

		page = await plans.list()
		assert page.items[0].title == "Touched"
		assert [p.title for p in page.items[1:]] == ["Newest", "Middle"]

	@pytest.mark.asyncio
	async def test_list_defaults(self, plans):
		page = await plans.list()
		assert page.page == 1
		assert page.limit == 10
		assert page.items == []

	@pytest.mark.asyncio
	@pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (-1, 5)])
	async def test_list_rejects_non_positive_bounds(self, plans, page, limit):
		with pytest.raises(ValidationError):
			await plans.list(page=page, limit=limit)

	@pytest.mark.asyncio
	@pytest.mark.parametrize("page,limit", [(10**20, 10), (1, 10**20), (2**62, 4)])
	async def test_list_rejects_offsets_beyond_integer_range(self, plans, page, limit):
		with pytest.raises(ValidationError):
			await plans.list(page=page, limit=limit)


class TestPlanUpdate:
	"""Tests for the version-checked update."""

	@pytest.mark.asyncio
	async def test_update_then_stale_retry_conflicts(self, plans):
		plan = await plans.create(TravelPlanCreate(title="Trip"))
		assert plan.version == 1

		updated = await plans.update(plan.id, TravelPlanUpdate(title="Trip2"), expected_version=1)
		assert updated.version == 2
		assert updated.title == "Trip2"

		with pytest.raises(ConflictError) as exc:
			await plans.update(plan.id, TravelPlanUpdate(title="Trip3"), expected_version=1)

		assert exc.value.current_version == 2
		assert exc.value.to_dict()["current_version"] == 2
		stored = await plans.get(plan.id)
		assert stored.title == "Trip2"
		assert stored.version == 2

	@pytest.mark.asyncio
	async def test_version_increments_by_one_each_time(self, plans):
		plan = await plans.create(TravelPlanCreate(title="Trip"))

		version = plan.version
		for i in range(5):
			plan = await plans.update(plan.id, TravelPlanUpdate(budget=f"{100 + i}"), version)
			assert plan.version == version + 1
			version = plan.version

		assert (await plans.get(plan.id)).version == 6

	@pytest.mark.asyncio
	async def test_update_is_partial(self, plans):
		plan = await plans.create(make_plan_data())

		updated = await plans.update(plan.id, TravelPlanUpdate(budget="1500.50"), expected_version=1)

		assert updated.budget == pytest.approx(1500.50)
		assert updated.title == plan.title
		assert updated.description == plan.description
		assert updated.start_date == plan.start_date
		assert updated.currency == "EUR"

	@pytest.mark.asyncio
	async def test_update_can_clear_optional_field(self, plans):
		plan = await plans.create(make_plan_data())
		updated = await plans.update(plan.id, TravelPlanUpdate(description=None), expected_version=1)
		assert updated.description is None

	@pytest.mark.asyncio
	async def test_update_refreshes_updated_at(self, plans):
		plan = await plans.create(make_plan_data())
		updated = await plans.update(plan.id, TravelPlanUpdate(is_public=True), expected_version=1)

		assert updated.is_public is True
		assert updated.updated_at >= plan.updated_at
		assert updated.created_at == plan.created_at

	@pytest.mark.asyncio
	async def test_update_missing_plan_raises_not_found(self, plans):
		with pytest.raises(NotFoundError):
			await plans.update(MISSING_ID, TravelPlanUpdate(title="Nope"), expected_version=1)

	@pytest.mark.asyncio
	async def test_update_missing_plan_with_dates_raises_not_found(self, plans):
		with pytest.raises(NotFoundError):
			await plans.update(MISSING_ID, TravelPlanUpdate(end_date="2025-01-01"), expected_version=1)

	@pytest.mark.asyncio
	async def test_update_requires_version(self, plans):
		plan = await plans.create(make_plan_data())

		with pytest.raises(ValidationError) as exc:
			await plans.update(plan.id, TravelPlanUpdate(title="X"), expected_version=None)

		assert exc.value.details == "Version is required"
		assert (await plans.get(plan.id)).version == 1

	@pytest.mark.asyncio
	@pytest.mark.parametrize("column", ["updated_at", "version", "title = 'x', id"])
	async def test_update_guards_column_names(self, plans, column):
		class RawChanges:
			def changes(self):
				return {column: "x"}

		plan = await plans.create(make_plan_data())

		with pytest.raises(ValidationError, match="Invalid fields for update"):
			await plans.update(plan.id, RawChanges(), expected_version=1)

		assert (await plans.get(plan.id)).version == 1

	@pytest.mark.asyncio
	async def test_update_rejects_version_beyond_integer_range(self, plans):
		plan = await plans.create(make_plan_data())

		with pytest.raises(ValidationError, match="Version must be between"):
			await plans.update(plan.id, TravelPlanUpdate(title="X"), expected_version=2**70)

		assert (await plans.get(plan.id)).version == 1

	@pytest.mark.asyncio
	async def test_update_checks_dates_against_stored_values(self, plans):
		plan = await plans.create(make_plan_data(start_date="2025-06-01", end_date="2025-06-05"))

		with pytest.raises(ValidationError):
			await plans.update(plan.id, TravelPlanUpdate(end_date="2025-05-20"), expected_version=1)

		with pytest.raises(ValidationError):
			await plans.update(plan.id, TravelPlanUpdate(start_date="2025-06-30"), expected_version=1)

		stored = await plans.get(plan.id)
		assert stored.version == 1
		assert stored.end_date == date(2025, 6, 5)

	@pytest.mark.asyncio
	async def test_update_moves_both_dates_together(self, plans):
		plan = await plans.create(make_plan_data(start_date="2025-06-01", end_date="2025-06-05"))

		updated = await plans.update(
			plan.id,
			TravelPlanUpdate(start_date="2025-07-01", end_date="2025-07-10"),
			expected_version=1,
		)

		assert updated.start_date == date(2025, 7, 1)
		assert updated.end_date == date(2025, 7, 10)
		assert updated.version == 2

	@pytest.mark.asyncio
	async def test_date_validation_precedes_version_check(self, plans):
		plan = await plans.create(make_plan_data(start_date="2025-06-01", end_date="2025-06-05"))

		with pytest.raises(ValidationError):
			await plans.update(plan.id, TravelPlanUpdate(end_date="2025-01-01"), expected_version=7)


class TestPlanRemove:
	"""Tests for deletion and cascade."""

	@pytest.mark.asyncio
	async def test_remove_then_get_raises(self, plans):
		plan = await plans.create(make_plan_data())
		await plans.remove(plan.id)

		with pytest.raises(NotFoundError):
			await plans.get(plan.id)

	@pytest.mark.asyncio
	async def test_remove_twice_raises_not_found(self, plans):
		plan = await plans.create(make_plan_data())
		await plans.remove(plan.id)

		with pytest.raises(NotFoundError):
			await plans.remove(plan.id)

	@pytest.mark.asyncio
	async def test_remove_cascades_to_locations(self, stores):
		db, plans, locations = stores
		plan = await plans.create(make_plan_data())
		loc = await locations.create(plan.id, LocationCreate(name="Belem Tower"))

		await plans.remove(plan.id)

		with pytest.raises(NotFoundError):
			await plans.get(plan.id)
		with pytest.raises(NotFoundError):
			await locations.get(loc.id)

		async with db.connect() as conn:
			async with conn.execute(
				"SELECT COUNT(*) FROM locations WHERE travel_plan_id = ?", (plan.id,)
			) as cursor:
				assert (await cursor.fetchone())[0] == 0

	@pytest.mark.asyncio
	async def test_remove_all(self, plans, locations):
		for i in range(3):
			plan = await plans.create(TravelPlanCreate(title=f"Trip {i}"))
			await locations.create(plan.id, LocationCreate(name="Stop"))

		deleted = await plans.remove_all()

		assert deleted == 3
		assert (await plans.list()).total == 0

	@pytest.mark.asyncio
	async def test_exists(self, plans):
		plan = await plans.create(make_plan_data())
		assert await plans.exists(plan.id) is True
		assert await plans.exists(MISSING_ID) is False
