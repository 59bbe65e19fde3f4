"""ORM models exposed for metadata discovery."""
from pulse.db.models.planner_audit_log import PlannerAuditLog
from pulse.db.models.planner_preferences import PlannerPreferencesRecord

__all__ = [
    "PlannerAuditLog",
    "PlannerPreferencesRecord",
]
