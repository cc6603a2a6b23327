"""JSON API endpoints for travel plans and their locations."""

from __future__ import annotations

import json
import logging
import re
import sqlite3
from functools import wraps
from typing import Any, Awaitable, Callable

import pydantic
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..errors import TravelPlannerError, ValidationError
from ..locations.models import LocationCreate, LocationUpdate
from ..locations.store import LocationStore
from ..plans.models import TravelPlanCreate, TravelPlanUpdate
from ..plans.store import PlanStore

logger = logging.getLogger(__name__)

UUID_RE = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")

Endpoint = Callable[[Request], Awaitable[Response]]


class BadRequest(Exception):
	"""Malformed request that never reaches a store."""


def endpoint(fn: Endpoint) -> Endpoint:
	"""Render domain errors with their status code and hide everything else behind a 500."""

	@wraps(fn)
	async def wrapper(request: Request) -> Response:
		try:
			return await fn(request)
		except BadRequest as e:
			logger.warning(f"{request.method} {request.url.path}: {e}")
			return JSONResponse({"error": str(e)}, status_code=400)
		except TravelPlannerError as e:
			if e.status_code >= 500:
				logger.error(f"{request.method} {request.url.path}: {e}", exc_info=True)
			else:
				logger.warning(f"{request.method} {request.url.path}: {e}")
			return JSONResponse(e.to_dict(), status_code=e.status_code)
		except Exception:
			logger.exception(f"{request.method} {request.url.path} failed")
			return JSONResponse({"error": "Internal server error"}, status_code=500)

	return wrapper


def get_plans(request: Request) -> PlanStore:
	return request.app.state.plans


def get_locations(request: Request) -> LocationStore:
	return request.app.state.locations


def path_id(request: Request, name: str = "id") -> str:
	"""Path parameter that must be a UUID; returned lower-cased."""
	value = request.path_params[name]
	if not UUID_RE.match(value):
		raise BadRequest("Invalid UUID format")
	return value.lower()


def query_int(request: Request, name: str, default: int) -> int:
	raw = request.query_params.get(name)
	if raw is None or raw == "":
		return default
	try:
		return int(raw)
	except ValueError:
		raise ValidationError(f"{name} must be an integer")


async def read_json(request: Request) -> dict[str, Any]:
	try:
		body = await request.json()
	except (json.JSONDecodeError, UnicodeDecodeError):
		raise BadRequest("Invalid JSON")
	if not isinstance(body, dict):
		raise ValidationError("Request body must be a JSON object")
	return body


def format_errors(exc: pydantic.ValidationError) -> str:
	"""Flatten pydantic errors into one '; '-joined detail string."""
	messages = []
	for err in exc.errors():
		msg = err["msg"]
		if msg.startswith("Value error, "):
			messages.append(msg[len("Value error, "):])
		else:
			loc = ".".join(str(part) for part in err["loc"])
			messages.append(f"{loc}: {msg}" if loc else msg)
	return "; ".join(messages) or "Invalid payload"


def parse(model: type[pydantic.BaseModel], body: dict[str, Any]) -> Any:
	try:
		return model.model_validate(body)
	except pydantic.ValidationError as e:
		raise ValidationError(format_errors(e))


def render(model: pydantic.BaseModel, status_code: int = 200) -> JSONResponse:
	return JSONResponse(model.model_dump(mode="json"), status_code=status_code)


# Travel plans

@endpoint
async def list_plans(request: Request) -> Response:
	page = query_int(request, "page", 1)
	limit = query_int(request, "limit", request.app.state.default_page_size)
	result = await get_plans(request).list(page, limit)
	return render(result)


@endpoint
async def create_plan(request: Request) -> Response:
	data = parse(TravelPlanCreate, await read_json(request))
	plan = await get_plans(request).create(data)
	return render(plan, status_code=201)


@endpoint
async def get_plan(request: Request) -> Response:
	plan = await get_plans(request).get(path_id(request))
	return render(plan)


@endpoint
async def update_plan(request: Request) -> Response:
	plan_id = path_id(request)
	data = parse(TravelPlanUpdate, await read_json(request))
	plan = await get_plans(request).update(plan_id, data, data.version)
	return render(plan)


@endpoint
async def delete_plan(request: Request) -> Response:
	await get_plans(request).remove(path_id(request))
	return Response(status_code=204)


# Locations

@endpoint
async def list_locations(request: Request) -> Response:
	locations = await get_locations(request).list_for_plan(path_id(request, "plan_id"))
	return JSONResponse([loc.model_dump(mode="json") for loc in locations])


@endpoint
async def create_location(request: Request) -> Response:
	plan_id = path_id(request, "plan_id")
	data = parse(LocationCreate, await read_json(request))
	location = await get_locations(request).create(plan_id, data)
	return render(location, status_code=201)


@endpoint
async def get_location(request: Request) -> Response:
	location = await get_locations(request).get(path_id(request))
	return render(location)


@endpoint
async def update_location(request: Request) -> Response:
	location_id = path_id(request)
	data = parse(LocationUpdate, await read_json(request))
	location = await get_locations(request).update(location_id, data, data.version)
	return render(location)


@endpoint
async def delete_location(request: Request) -> Response:
	await get_locations(request).remove(path_id(request))
	return Response(status_code=204)


# Health

async def health(request: Request) -> JSONResponse:
	"""Liveness: the process is up."""
	api_status = {"status": "up"}
	return JSONResponse({
		"status": "ok",
		"info": {"api": api_status},
		"error": {},
		"details": {"api": api_status},
	})


async def health_details(request: Request) -> JSONResponse:
	"""Readiness: the database answers a query."""
	try:
		ok = await request.app.state.db.ping()
	except (sqlite3.Error, OSError) as e:
		logger.error(f"Database ping failed: {e}")
		ok = False

	db_status = {"status": "up" if ok else "down"}
	if ok:
		return JSONResponse({
			"status": "ok",
			"info": {"database": db_status},
			"error": {},
			"details": {"database": db_status},
		})
	return JSONResponse(
		{
			"status": "error",
			"info": {},
			"error": {"database": db_status},
			"details": {"database": db_status},
		},
		status_code=503,
	)
