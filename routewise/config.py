"""Runtime configuration — env-driven.

Centralized config using pydantic-settings for environment variable
support.  Reads from a .env file and ROUTEWISE_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from routewise.errors import ConfigurationError


class RoutewiseConfig(BaseSettings):
    """Routing pipeline configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export ROUTEWISE_LOG_LEVEL=DEBUG
        export ROUTEWISE_SECONDARY_QUEUE_URL=sqlite:///data/queue-b.db

    Or via .env file::

        ROUTEWISE_PRIMARY_QUEUE_URL=sqlite:///data/queue-a.db
        ROUTEWISE_SECONDARY_QUEUE_URL=sqlite:///data/queue-b.db

    Queue URLs take the form ``memory://<name>`` (in-process, volatile)
    or ``sqlite:///<path>`` (persistent).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ROUTEWISE_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"

    # Queue targets
    primary_queue_url: str = "sqlite:///.routewise/queue-a.db"
    secondary_queue_url: str = ""  # required by the rescue consumer, no default
    max_queue_depth: int = 1024
    visibility_timeout_seconds: float = 30.0

    # Consumer invocation
    consumer_timeout_seconds: float = 10.0
    batch_size: int = 10

    # Routing policy
    topic_name: str = "events"
    classification_attribute: str = "country"
    routed_values: list[str] = ["Ireland", "China"]
    required_field: str = "email"

    # Crew lookup seed data
    crew_seed_path: Path | None = None

    def require_secondary_queue_url(self) -> str:
        """Return the secondary queue URL or fail startup.

        Raises
        ------
        ConfigurationError
            If ``secondary_queue_url`` is not configured.
        """
        if not self.secondary_queue_url:
            raise ConfigurationError(
                "secondary_queue_url is required. "
                "Set ROUTEWISE_SECONDARY_QUEUE_URL."
            )
        return self.secondary_queue_url
