from dataclasses import dataclass
from typing import Optional

from core.config_loader import AppConfig, ScoringConfig
from core.scorer import MatchScorer, ScoringServiceClient, load_scorer
from notification.service import NotificationService


@dataclass
class AppContext:
    """Application context container that holds all wired dependencies.

    DB access is not held here; it is obtained via matching_uow() inside
    each processing loop.
    """
    config: AppConfig
    scorer: MatchScorer
    notification_service: Optional[NotificationService] = None

    @classmethod
    def build(cls, config: AppConfig) -> "AppContext":
        """Build an AppContext from config.

        Args:
            config: Loaded application configuration

        Returns:
            Fully wired AppContext instance (no DB session attached)
        """
        scorer = cls._build_scorer(config.scoring)

        # Notification Service (only if enabled)
        notification_service = None
        if config.notifications and config.notifications.enabled:
            notification_service = cls._build_notification_service(config)

        return cls(
            config=config,
            scorer=scorer,
            notification_service=notification_service
        )

    @staticmethod
    def _build_scorer(scoring_config: ScoringConfig) -> MatchScorer:
        """In-process scorer when scorer_class is set, HTTP scoring service otherwise."""
        if scoring_config.scorer_class:
            return load_scorer(scoring_config.scorer_class, scoring_config.options)

        if not scoring_config.url:
            raise ValueError("Scoring is not configured: set scoring.url or scoring.scorer_class")

        return ScoringServiceClient(
            base_url=scoring_config.url,
            request_timeout_seconds=scoring_config.request_timeout_seconds,
            api_key=scoring_config.api_key
        )

    @staticmethod
    def _build_notification_service(config: AppConfig) -> Optional[NotificationService]:
        """Build notification service if enabled in config."""
        notification_config = config.notifications

        if not notification_config or not notification_config.enabled:
            return None

        return NotificationService(
            redis_url=notification_config.redis_url,
            base_url=notification_config.base_url,
            use_async_queue=notification_config.use_async_queue,
            channels=notification_config.channels,
            skip_dedup=not notification_config.deduplication_enabled,
            default_min_match_threshold=notification_config.default_min_match_threshold
        )

    def close(self) -> None:
        self.scorer.close()
