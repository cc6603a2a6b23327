"""Starlette app with route assembly."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from starlette.applications import Starlette
from starlette.routing import Mount, Route

from ..config import Config, get_config
from ..database import Database
from ..locations.store import LocationStore
from ..plans.store import PlanStore
from .api import (
	create_location,
	create_plan,
	delete_location,
	delete_plan,
	get_location,
	get_plan,
	health,
	health_details,
	list_locations,
	list_plans,
	update_location,
	update_plan,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


@asynccontextmanager
async def lifespan(app: Starlette) -> AsyncIterator[None]:
	await app.state.db.init()
	logger.info("Travel Planner API ready")
	yield
	logger.info("Travel Planner API shutting down")


def build_app(db_path: str = "", config: Optional[Config] = None) -> Starlette:
	"""Build and return the Starlette ASGI app."""
	if config is None and not db_path:
		config = get_config()

	if config is not None:
		database = Database(db_path or str(config.db_path), busy_timeout=config.busy_timeout)
		page_size = config.default_page_size
	else:
		database = Database(db_path)
		page_size = DEFAULT_PAGE_SIZE

	api_routes = [
		Route("/travel-plans", list_plans, methods=["GET"]),
		Route("/travel-plans", create_plan, methods=["POST"]),
		Route("/travel-plans/{id}", get_plan, methods=["GET"]),
		Route("/travel-plans/{id}", update_plan, methods=["PUT"]),
		Route("/travel-plans/{id}", delete_plan, methods=["DELETE"]),
		Route("/travel-plans/{plan_id}/locations", list_locations, methods=["GET"]),
		Route("/travel-plans/{plan_id}/locations", create_location, methods=["POST"]),
		Route("/locations/{id}", get_location, methods=["GET"]),
		Route("/locations/{id}", update_location, methods=["PUT"]),
		Route("/locations/{id}", delete_location, methods=["DELETE"]),
	]
	routes = [
		Mount("/api", routes=api_routes),
		Route("/health", health),
		Route("/health/details", health_details),
	]

	app = Starlette(routes=routes, lifespan=lifespan)
	plans = PlanStore(database)
	app.state.db = database
	app.state.plans = plans
	app.state.locations = LocationStore(database, plans)
	app.state.default_page_size = page_size
	return app
