"""Plans module - Versioned travel plan storage."""

from .models import PlanPage, TravelPlan, TravelPlanCreate, TravelPlanDetail, TravelPlanUpdate
from .store import PlanStore

__all__ = [
	"TravelPlan",
	"TravelPlanDetail",
	"TravelPlanCreate",
	"TravelPlanUpdate",
	"PlanPage",
	"PlanStore",
]
