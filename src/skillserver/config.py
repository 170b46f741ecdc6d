"""Skill server configuration loaded from environment variables.

Every setting can be overridden with an environment variable of the same name
(case-insensitive), e.g. PORT=9000 or SCHOOL_NAME=불곡고.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class SkillServerConfig(BaseSettings):
    """Skill server configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # HTTP
    host: str = Field(default="0.0.0.0", description="Interface to bind")
    port: int = Field(default=8080, ge=1, le=65535, description="Port to listen on")

    # Comcigan school lookup
    school_name: str = Field(
        default="불곡고",
        description="School name searched on Comcigan at startup",
    )
    week_num: int = Field(
        default=0,
        ge=0,
        le=1,
        description="Comcigan week selector (0 = this week, 1 = next week)",
    )

    # Caching
    timetable_cache_seconds: int = Field(
        default=600,
        ge=0,
        description="How long a fetched full timetable is reused (0 disables)",
    )

    # Readiness / upstream
    init_retry_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Delay between failed initialization attempts",
    )
    fetch_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Upper bound for a single timetable fetch",
    )
    init_inline_wait: bool = Field(
        default=False,
        description="Await initialization inside the request instead of answering 'warming up'",
    )
    not_ready_status_code: int = Field(
        default=503,
        description="HTTP status for the 'warming up' reply (503 or 200)",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton pattern
_config: SkillServerConfig | None = None


def get_config() -> SkillServerConfig:
    """Get the skill server configuration singleton.

    Returns:
        SkillServerConfig: Skill server configuration instance
    """
    global _config
    if _config is None:
        _config = SkillServerConfig()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment."""
    global _config
    _config = None
