"""Centralized configuration for the course-booking assistant.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/booking-assistant/<VARIABLE_NAME>``.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# ── Feature flag: running on AWS? ────────────────────────────────────
_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))


# ── Secret resolution ────────────────────────────────────────────────

def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store.

    Returns ``None`` if the parameter does not exist or boto3 is
    unavailable.  Errors are logged but never raised so that local-dev
    fallback still works.
    """
    try:
        import boto3  # noqa: PLC0415 (lazy import)

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"/booking-assistant/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _require_env(name: str) -> str:
    """Return a config value from env-var or SSM, or raise a clear error."""
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value

    if _ON_AWS:
        ssm_value = _get_ssm_parameter(name)
        if ssm_value:
            return ssm_value

    raise OSError(
        f"Missing required configuration: {name}. "
        f"Set it in .env (local) or SSM Parameter Store /booking-assistant/{name} (AWS)."
    )


def _optional_float(name: str, default: float | None) -> float | None:
    """Parse an optional float; an explicitly empty value means ``None``."""
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = raw.strip()
    return float(raw) if raw else None


# ── LLM ─────────────────────────────────────────────────────────────
ANTHROPIC_API_KEY: str = _require_env("ANTHROPIC_API_KEY")
MODEL_NAME: str = os.getenv("MODEL_NAME", "claude-sonnet-4-5")
# Cheaper model for translation and catalog generation
FAST_MODEL_NAME: str = os.getenv("FAST_MODEL_NAME", "claude-haiku-4-5")
GENERATION_TIMEOUT_SECONDS: float = float(os.getenv("GENERATION_TIMEOUT_SECONDS", "8"))

# ── Embeddings ──────────────────────────────────────────────────────
OPENAI_API_KEY: str = _require_env("OPENAI_API_KEY")
EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
EMBEDDING_DIMENSIONS: int = int(os.getenv("EMBEDDING_DIMENSIONS", "1536"))

# ── FAQ retrieval ───────────────────────────────────────────────────
# Postgres (pgvector) store when set, in-memory store otherwise
DATABASE_URL: str | None = os.getenv("DATABASE_URL") or None
DATABASE_POOL_SIZE: int = int(os.getenv("DATABASE_POOL_SIZE", "5"))
# Cosine distance above which the nearest entry is not a match.
# Set FAQ_MAX_DISTANCE= (empty) to always accept the nearest entry.
FAQ_MAX_DISTANCE: float | None = _optional_float("FAQ_MAX_DISTANCE", 0.35)

# ── Language ────────────────────────────────────────────────────────
DEFAULT_LANGUAGE: str = os.getenv("DEFAULT_LANGUAGE", "en")
NO_SIGNAL_LANGUAGE: str = os.getenv("NO_SIGNAL_LANGUAGE", "zh-TW")
CHINESE_SCRIPT: str = os.getenv("CHINESE_SCRIPT", "traditional")

# ── Conversation state ──────────────────────────────────────────────
TEACHER_CACHE_POLICY: str = os.getenv("TEACHER_CACHE_POLICY", "merge")
CONVERSATION_TTL_SECONDS: float = float(os.getenv("CONVERSATION_TTL_SECONDS", "3600"))
EVICTION_POLICY: str = os.getenv("EVICTION_POLICY", "fixed")

# ── Pricing ─────────────────────────────────────────────────────────
COURSE_PRICE_MIN: int = int(os.getenv("COURSE_PRICE_MIN", "500"))
COURSE_PRICE_MAX: int = int(os.getenv("COURSE_PRICE_MAX", "2000"))
MATERIAL_FEE_MIN: int = int(os.getenv("MATERIAL_FEE_MIN", "300"))
MATERIAL_FEE_MAX: int = int(os.getenv("MATERIAL_FEE_MAX", "1000"))
DISCOUNT_RATE: float = float(os.getenv("DISCOUNT_RATE", "0"))

# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))
CORS_ORIGINS: list[str] = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
