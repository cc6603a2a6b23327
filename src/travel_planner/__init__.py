"""travel-planner: collaborative travel plans with optimistic locking."""

__version__ = "1.0.0"
