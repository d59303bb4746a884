"""
Process configuration for the CaseWrite webhook service.

Settings are loaded once at startup (``Settings.from_env()``) and passed
explicitly to the app factory; nothing in the webhook core reads the
environment at request time.

Environment variables
---------------------
WEBHOOK_SECRET_EMAIL      HMAC secret for /api/webhooks/email.
WEBHOOK_SECRET_SCANNER    HMAC secret for /api/webhooks/scanner.
WEBHOOK_SECRET_EXTERNAL   HMAC secret for /api/webhooks/external.
                          An unset or empty secret disables signature
                          verification for that source.
CORS_ORIGINS              Extra allowed origins, comma-separated.
LOG_LEVEL                 Logging level name (default: INFO).
MAX_WEBHOOK_BODY_BYTES    Largest accepted webhook body (default: 1 MiB).
DOCUMENT_FETCH_TIMEOUT    Seconds to wait when downloading a document
                          referenced by a webhook (default: 30).
"""

import os
from typing import Any, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, PositiveFloat, PositiveInt, field_validator

DEFAULT_MAX_WEBHOOK_BODY_BYTES = 1024 * 1024
DEFAULT_DOCUMENT_FETCH_TIMEOUT = 30.0

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")

# Settings field -> environment variable, for values pydantic validates
_ENV_OVERRIDES = {
    "log_level": "LOG_LEVEL",
    "max_webhook_body_bytes": "MAX_WEBHOOK_BODY_BYTES",
    "document_fetch_timeout": "DOCUMENT_FETCH_TIMEOUT",
}

_DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:3001",
]


class WebhookSecretConfig(BaseModel):
    """Per-source shared secrets. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    email: Optional[str] = None
    scanner: Optional[str] = None
    external: Optional[str] = None

    def secret_for(self, source_type: str) -> Optional[str]:
        """
        Return the secret configured for a raw source-type path segment.

        Unknown source types never have a secret. Empty strings count as
        "not configured".
        """
        if source_type not in ("email", "scanner", "external"):
            return None
        return getattr(self, source_type) or None

    def is_enforced(self, source_type: str) -> bool:
        return self.secret_for(source_type) is not None


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    webhook_secrets: WebhookSecretConfig = WebhookSecretConfig()
    cors_origins: List[str] = list(_DEFAULT_CORS_ORIGINS)
    log_level: str = "INFO"
    max_webhook_body_bytes: PositiveInt = DEFAULT_MAX_WEBHOOK_BODY_BYTES
    document_fetch_timeout: PositiveFloat = DEFAULT_DOCUMENT_FETCH_TIMEOUT

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        """Accept level names case-insensitively; reject anything logging does not know."""
        if not isinstance(v, str):
            return v
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}, got {v!r}")
        return level

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from the process environment (and a .env file if present).

        Unset or empty variables keep their defaults. Set values are handed to
        pydantic as raw strings and validated the same way as direct
        construction.

        Raises:
            ValidationError: if LOG_LEVEL is not a logging level name, or a
                numeric variable cannot be parsed or is not positive.
        """
        load_dotenv()

        secrets = WebhookSecretConfig(
            email=os.getenv("WEBHOOK_SECRET_EMAIL") or None,
            scanner=os.getenv("WEBHOOK_SECRET_SCANNER") or None,
            external=os.getenv("WEBHOOK_SECRET_EXTERNAL") or None,
        )

        overrides = {}
        for field_name, env_name in _ENV_OVERRIDES.items():
            raw = os.getenv(env_name, "").strip()
            if raw:
                overrides[field_name] = raw

        return cls(
            webhook_secrets=secrets,
            cors_origins=get_cors_origins(os.getenv("CORS_ORIGINS", "")),
            **overrides,
        )


def get_cors_origins(cors_env: str = "") -> List[str]:
    """
    Build the list of allowed CORS origins.

    The localhost dev origins are always included. Additional origins come
    from a comma-separated string, e.g.:
        CORS_ORIGINS=https://casewrite.example.com,https://staging.example.com

    Duplicates are removed while preserving order.
    """
    extra_origins = [o.strip() for o in cors_env.split(",") if o.strip()]

    seen: set = set()
    origins: List[str] = []
    for origin in _DEFAULT_CORS_ORIGINS + extra_origins:
        if origin not in seen:
            seen.add(origin)
            origins.append(origin)

    return origins
