import os
from pydantic import BaseModel


class Settings(BaseModel):
    api_key: str = os.getenv("API_KEY", "change-me")
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    stylist_model: str = os.getenv("STYLIST_MODEL", "gpt-4o-mini")

    # Hosted data store holding profiles, garments and garment_sizes (PostgREST style)
    catalog_api_base: str = os.getenv("CATALOG_API_BASE", "http://localhost:54321/rest/v1")
    catalog_api_key: str | None = os.getenv("CATALOG_API_KEY")

    # JWT
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret")
    jwt_audience: str | None = os.getenv("JWT_AUDIENCE")
    jwt_issuer: str | None = os.getenv("JWT_ISSUER")
    jwt_ttl_seconds: int = int(os.getenv("JWT_TTL_SECONDS", "3600"))

    # Rate limit (token bucket)
    rate_limit_per_min: int = int(os.getenv("RATE_LIMIT_PER_MIN", "60"))
    rate_limit_burst: int = int(os.getenv("RATE_LIMIT_BURST", "30"))

    # Dominant color detection
    color_fetch_timeout_seconds: float = float(os.getenv("COLOR_FETCH_TIMEOUT_SECONDS", "8"))
    color_sample_size: int = int(os.getenv("COLOR_SAMPLE_SIZE", "64"))
    color_cluster_count: int = int(os.getenv("COLOR_CLUSTER_COUNT", "5"))

    # "runs small" / "runs large" insight: deviation in inches on at least N primary axes
    runs_small_threshold_in: float = float(os.getenv("RUNS_SMALL_THRESHOLD_IN", "1.0"))
    runs_small_min_axes: int = int(os.getenv("RUNS_SMALL_MIN_AXES", "2"))


settings = Settings()
