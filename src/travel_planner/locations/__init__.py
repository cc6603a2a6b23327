"""Locations module - Ordered stops within a travel plan."""

from .models import Location, LocationCreate, LocationUpdate
from .store import LocationStore

__all__ = [
	"Location",
	"LocationCreate",
	"LocationUpdate",
	"LocationStore",
]
