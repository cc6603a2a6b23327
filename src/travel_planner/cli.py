"""CLI for travel-planner: serve, init-db, purge, and doctor commands."""

import argparse
import asyncio
import sqlite3
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version

from .config import Config, load_config
from .database import Database
from .logging_config import setup_logging
from .plans.store import PlanStore


def _database(config: Config) -> Database:
	return Database(str(config.db_path), busy_timeout=config.busy_timeout)


def cmd_serve(args: argparse.Namespace) -> None:
	"""Run the HTTP API."""
	config = load_config()
	setup_logging(level=config.log_level, log_dir=config.log_dir)

	from .web import run_server
	run_server(config, host=args.host, port=args.port)


def cmd_init_db(args: argparse.Namespace) -> None:
	"""Create the schema at the configured database path."""
	config = load_config()
	asyncio.run(_database(config).init())
	print(f"Database ready: {config.db_path}")


async def _purge(config: Config) -> int:
	db = _database(config)
	await db.init()
	return await PlanStore(db).remove_all()


def cmd_purge(args: argparse.Namespace) -> None:
	"""Delete every travel plan and location."""
	if not args.yes:
		print("Refusing to delete all travel plans without --yes.")
		sys.exit(1)
	config = load_config()
	count = asyncio.run(_purge(config))
	print(f"Deleted {count} travel plan(s).")


def cmd_doctor(args: argparse.Namespace) -> None:
	"""Print resolved paths and check the database."""
	config = load_config()
	try:
		installed = pkg_version("travel-planner")
	except PackageNotFoundError:
		installed = "(not installed)"

	print("travel-planner doctor")
	print(f"{'=' * 40}")
	print(f"  Version:  {installed}")
	print(f"  Config:   {config.config_dir}")
	print(f"  Data:     {config.data_dir}")
	print(f"  Database: {config.db_path}")
	print(f"  Logs:     {config.log_dir}")

	try:
		ok = asyncio.run(_database(config).ping())
	except (sqlite3.Error, OSError) as e:
		print(f"  [FAIL] Database: {e}")
		sys.exit(1)

	if ok:
		print("  [OK] Database reachable")
	else:
		print("  [FAIL] Database did not answer")
		sys.exit(1)


def main() -> None:
	"""CLI entry point."""
	parser = argparse.ArgumentParser(
		prog="travel-planner",
		description="Collaborative travel planning API with optimistic locking",
	)
	subparsers = parser.add_subparsers(dest="command")

	# serve
	serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
	serve_parser.add_argument("--host", type=str, default=None, help="Bind address")
	serve_parser.add_argument("--port", type=int, default=None, help="Server port")
	serve_parser.set_defaults(func=cmd_serve)

	# init-db
	init_parser = subparsers.add_parser("init-db", help="Create the database schema")
	init_parser.set_defaults(func=cmd_init_db)

	# purge
	purge_parser = subparsers.add_parser("purge", help="Delete all travel plans and locations")
	purge_parser.add_argument("--yes", action="store_true", help="Confirm deletion")
	purge_parser.set_defaults(func=cmd_purge)

	# doctor
	doctor_parser = subparsers.add_parser("doctor", help="Health check")
	doctor_parser.set_defaults(func=cmd_doctor)

	args = parser.parse_args()

	if not args.command:
		parser.print_help()
		sys.exit(1)

	args.func(args)
