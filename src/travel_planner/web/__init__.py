"""HTTP surface for travel-planner."""

from __future__ import annotations

from typing import Optional

from ..config import Config


def create_app(db_path: str = "", config: Optional[Config] = None) -> object:
	"""Create the Starlette ASGI application."""
	from .app import build_app

	return build_app(db_path=db_path, config=config)


def run_server(config: Config, host: Optional[str] = None, port: Optional[int] = None) -> None:
	"""Run the API server."""
	import uvicorn

	app = create_app(config=config)
	host = host or config.host
	port = port or config.port

	print(f"API listening on http://{host}:{port}/api")
	print("Press Ctrl+C to stop.")
	uvicorn.run(app, host=host, port=port, log_level=config.log_level.lower())
