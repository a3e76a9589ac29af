"""Server configuration — reads settings from environment variables.

All settings have defaults suitable for local development.
"""

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS: comma-separated origins, or "*" for wide-open dev mode
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    # Directory of form schema files (webhook URLs, derived field ids).
    # None means no forms are loaded and only the default webhook applies.
    forms_dir: str | None = None

    # Completion webhook used for forms that do not configure their own
    default_webhook_url: str | None = None

    # Seconds before an outgoing webhook request is abandoned
    webhook_timeout: float = 10.0


def load_settings() -> ServerSettings:
    """Build settings from ``SERVER_*`` / ``WEBHOOK_*`` environment variables."""
    raw_origins = os.getenv("SERVER_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        cors_origins=origins,
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
        forms_dir=os.getenv("SERVER_FORMS_DIR") or None,
        default_webhook_url=os.getenv("WEBHOOK_URL") or None,
        webhook_timeout=float(os.getenv("WEBHOOK_TIMEOUT", "10")),
    )
