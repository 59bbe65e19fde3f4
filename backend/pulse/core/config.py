"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Pulse Planner"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "sqlite:///./pulse.db"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "pulse-planner"

    scheduler_enabled: bool = False
    scheduler_timezone: str = "UTC"
    planner_tick_seconds: int = 60
    calendar_refresh_minutes: int = 10

    # Defaults for a freshly created planner; users override them through preferences.
    planner_focus_break_threshold: int = 90
    planner_default_break_duration: int = 15
    planner_default_focus_block_duration: int = 50
    planner_regroup_duration: int = 10
    planner_anchor_reminder_lead_time: int = 15
    planner_auto_schedule_breaks: bool = False
    planner_auto_schedule_focus_blocks: bool = False
    planner_auto_schedule_regroup: bool = False
    planner_require_confirmation: bool = True
    planner_working_hours_start: int = 9
    planner_working_hours_end: int = 17
    planner_minimum_event_gap: int = 5
    planner_friction_threshold: int = 3
    planner_max_active_suggestions: int = 5

    calendar_provider: str = "memory"
    google_calendar_id: str = "primary"
    google_access_token: str | None = None
    calendar_timeout_seconds: float = 15.0

    audit_sink: str = "database"

    notifications_enabled: bool = False
    notifications_provider: str = "noop"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
