"""Application configuration loaded from environment variables."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""


# Upper bound of the matchCount request field
MATCH_COUNT_CEILING = 20


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, str(default))
    try:
        return float(raw)
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Config:
    """Application configuration."""

    # Server settings
    host: str
    port: int
    database_url: str
    admin_token: str | None
    log_level: str

    # Embedding settings
    google_ai_api_key: str | None
    embedding_model: str
    embedding_dimensions: int
    embedding_timeout: float

    # Recommendation settings
    recs_default_match_count: int
    recs_max_match_count: int
    recs_retrieval_limit: int
    recs_category_cap: int
    recs_weight_similarity: float
    recs_weight_intrinsic: float
    recs_weight_affinity: float

    # LLM settings
    llm_enabled: bool
    llm_provider: str  # "openai", "anthropic" or "google"
    openai_api_key: str | None
    openai_model: str
    anthropic_api_key: str | None
    anthropic_model: str
    gemini_text_model: str
    explanation_max_chars: int

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        host = os.getenv("HOST", "0.0.0.0")
        port_str = os.getenv("PORT", "8000")
        try:
            port = int(port_str)
        except ValueError:
            raise ConfigurationError(f"PORT must be an integer, got: {port_str}")

        database_url = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./tastematch.db")
        admin_token = os.getenv("ADMIN_TOKEN") or None
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        # Embedding settings
        google_ai_api_key = os.getenv("GOOGLE_AI_API_KEY") or None
        embedding_model = os.getenv("EMBEDDING_MODEL", "gemini-embedding-001")
        embedding_dimensions = _int_env("EMBEDDING_DIMENSIONS", 768)
        if embedding_dimensions <= 0:
            raise ConfigurationError(
                f"EMBEDDING_DIMENSIONS must be positive, got: {embedding_dimensions}"
            )
        embedding_timeout = _float_env("EMBEDDING_TIMEOUT", 30.0)

        # Recommendation settings
        recs_max_match_count = _int_env("RECS_MAX_MATCH_COUNT", MATCH_COUNT_CEILING)
        if not 1 <= recs_max_match_count <= MATCH_COUNT_CEILING:
            raise ConfigurationError(
                f"RECS_MAX_MATCH_COUNT must lie between 1 and {MATCH_COUNT_CEILING}, "
                f"got: {recs_max_match_count}"
            )
        recs_default_match_count = _int_env("RECS_DEFAULT_MATCH_COUNT", 10)
        if not 1 <= recs_default_match_count <= recs_max_match_count:
            raise ConfigurationError(
                "RECS_DEFAULT_MATCH_COUNT must lie between 1 and RECS_MAX_MATCH_COUNT"
            )
        recs_retrieval_limit = max(_int_env("RECS_RETRIEVAL_LIMIT", 50), recs_max_match_count)
        recs_category_cap = max(_int_env("RECS_CATEGORY_CAP", 2), 1)

        recs_weight_similarity = _float_env("RECS_WEIGHT_SIMILARITY", 0.6)
        recs_weight_intrinsic = _float_env("RECS_WEIGHT_INTRINSIC", 0.2)
        recs_weight_affinity = _float_env("RECS_WEIGHT_AFFINITY", 0.2)
        weights = (recs_weight_similarity, recs_weight_intrinsic, recs_weight_affinity)
        if any(w < 0 for w in weights) or abs(sum(weights) - 1.0) > 1e-6:
            raise ConfigurationError(
                "RECS_WEIGHT_* must be non-negative and sum to 1.0, "
                f"got: {recs_weight_similarity}, {recs_weight_intrinsic}, {recs_weight_affinity}"
            )

        # LLM settings
        llm_enabled = _bool_env("LLM_ENABLED", True)
        openai_api_key = os.getenv("OPENAI_API_KEY") or None
        openai_model = os.getenv("OPENAI_MODEL", "gpt-4.1-mini")
        anthropic_api_key = os.getenv("ANTHROPIC_API_KEY") or None
        anthropic_model = os.getenv("ANTHROPIC_MODEL", "claude-haiku-4-5-20251001")
        gemini_text_model = os.getenv("GEMINI_TEXT_MODEL", "gemini-2.0-flash")

        if anthropic_api_key:
            default_provider = "anthropic"
        elif google_ai_api_key:
            default_provider = "google"
        else:
            default_provider = "openai"
        llm_provider = os.getenv("LLM_PROVIDER", default_provider).lower()
        if llm_provider not in ("openai", "anthropic", "google"):
            raise ConfigurationError(
                "LLM_PROVIDER must be 'openai', 'anthropic' or 'google'"
            )

        explanation_max_chars = _int_env("EXPLANATION_MAX_CHARS", 300)

        return cls(
            host=host,
            port=port,
            database_url=database_url,
            admin_token=admin_token,
            log_level=log_level,
            google_ai_api_key=google_ai_api_key,
            embedding_model=embedding_model,
            embedding_dimensions=embedding_dimensions,
            embedding_timeout=embedding_timeout,
            recs_default_match_count=recs_default_match_count,
            recs_max_match_count=recs_max_match_count,
            recs_retrieval_limit=recs_retrieval_limit,
            recs_category_cap=recs_category_cap,
            recs_weight_similarity=recs_weight_similarity,
            recs_weight_intrinsic=recs_weight_intrinsic,
            recs_weight_affinity=recs_weight_affinity,
            llm_enabled=llm_enabled,
            llm_provider=llm_provider,
            openai_api_key=openai_api_key,
            openai_model=openai_model,
            anthropic_api_key=anthropic_api_key,
            anthropic_model=anthropic_model,
            gemini_text_model=gemini_text_model,
            explanation_max_chars=explanation_max_chars,
        )


config = Config.from_env()
