import yaml
import os
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator

from core.eligibility.hard_filter import EnabledDimensions, HardFilterConfig
from core.scorer.models import PriorityTier


class ScheduleConfig(BaseModel):
    # Daily trigger time, HH:MM in UTC
    run_at: str = "06:00"
    poll_interval_seconds: int = 30

    @field_validator('run_at')
    @classmethod
    def _validate_run_at(cls, value: str) -> str:
        hour, _, minute = value.partition(':')
        if not (hour.isdigit() and minute.isdigit() and 0 <= int(hour) < 24 and 0 <= int(minute) < 60):
            raise ValueError(f"run_at must be HH:MM, got {value!r}")
        return value

    @property
    def hour(self) -> int:
        return int(self.run_at.split(':')[0])

    @property
    def minute(self) -> int:
        return int(self.run_at.split(':')[1])


class DatabaseConfig(BaseModel):
    url: str


class EnabledDimensionsConfig(BaseModel):
    academic: bool = True
    demographic: bool = True
    major_field: bool = True
    experience: bool = True
    financial: bool = True
    special: bool = True


class HardFilterSettings(BaseModel):
    """Hard filter engine settings. Disabling dimensions is for analysis runs only."""
    early_exit: bool = True
    enabled_dimensions: EnabledDimensionsConfig = Field(default_factory=EnabledDimensionsConfig)

    def to_filter_config(self) -> HardFilterConfig:
        return HardFilterConfig(
            enabled_dimensions=EnabledDimensions(**self.enabled_dimensions.model_dump()),
            early_exit=self.early_exit,
        )


class StepRetryConfig(BaseModel):
    """Retry policy applied to each pipeline step."""
    max_attempts: int = 3
    wait_seconds: float = 2.0


class MatchingConfig(BaseModel):
    """
    Top-level matching configuration.
    """
    enabled: bool = True

    # Population selection
    min_profile_completeness: float = 50.0  # percent
    lookback_hours: int = 24  # scholarships created/updated within this window

    # Batching
    batch_size: int = 100
    max_workers: int = 1  # >1 scores students of a batch concurrently; scorer_class must be thread-safe

    # Tiers that trigger a notification
    notify_tiers: List[PriorityTier] = Field(
        default_factory=lambda: [PriorityTier.MUST_APPLY, PriorityTier.SHOULD_APPLY]
    )

    hard_filter: HardFilterSettings = Field(default_factory=HardFilterSettings)
    step_retry: StepRetryConfig = Field(default_factory=StepRetryConfig)


class ScoringConfig(BaseModel):
    """
    Scoring collaborator. Either an HTTP service (url) or an in-process
    scorer class given as "module.path:ClassName".
    """
    url: Optional[str] = None
    api_key: Optional[str] = None
    scorer_class: Optional[str] = None
    request_timeout_seconds: int = 30
    options: Dict[str, Any] = Field(default_factory=dict)


class NotificationChannelConfig(BaseModel):
    """Configuration for a single notification channel."""
    enabled: bool = True
    recipient: Optional[str] = None  # Fixed recipient override, e.g. a webhook URL


class NotificationConfig(BaseModel):
    """
    Configuration for notifications.

    Controls when and how students are notified about new matches.
    """
    enabled: bool = False  # Disabled by default - must opt-in

    # Base URL for links in notifications
    base_url: str = "http://localhost:3000"

    # Used when a student has no stored preferences yet
    default_min_match_threshold: float = 75.0

    # Channels to use
    channels: Dict[str, NotificationChannelConfig] = {}

    # Deduplication settings
    deduplication_enabled: bool = True

    # Redis queue settings
    use_async_queue: bool = True  # Use Redis queue for async processing
    redis_url: Optional[str] = None  # Override default Redis URL


class AppConfig(BaseModel):
    database: DatabaseConfig
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    notifications: Optional[NotificationConfig] = NotificationConfig()


def load_config(config_path: str = "config.yaml") -> AppConfig:
    # If not found at relative path (e.g. running from another dir), fall back to repo root
    if not os.path.exists(config_path):
        base_dir = os.path.dirname(os.path.abspath(__file__))
        config_path = os.path.join(base_dir, "..", "config.yaml")

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    # Allow env var override for DB URL
    env_db_url = os.environ.get("DATABASE_URL")
    if env_db_url:
        data.setdefault('database', {})
        data['database']['url'] = env_db_url

    # Allow env var override for the scoring service URL
    env_scoring_url = os.environ.get("SCORING_SERVICE_URL")
    if env_scoring_url:
        if data.get('scoring') is None:
            data['scoring'] = {}
        data['scoring']['url'] = env_scoring_url

    # Allow env var override for Redis URL
    env_redis_url = os.environ.get("REDIS_URL")
    if env_redis_url:
        if data.get('notifications') is None:
            data['notifications'] = {}
        data['notifications']['redis_url'] = env_redis_url

    return AppConfig(**data)
