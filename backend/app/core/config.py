import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    db_user: str = os.getenv("POSTGRES_USER", "bingefeed")
    db_password: str = os.getenv("POSTGRES_PASSWORD", "bingefeed")
    db_name: str = os.getenv("POSTGRES_DB", "bingefeed")
    database_url: str = os.getenv(
        "DATABASE_URL",
        f"postgresql+psycopg2://{os.getenv('POSTGRES_USER', 'bingefeed')}:{os.getenv('POSTGRES_PASSWORD', 'bingefeed')}@db:5432/{os.getenv('POSTGRES_DB', 'bingefeed')}",
    )
    redis_url: str = os.getenv("REDIS_URL", "redis://redis:6379/0")

    # Feed scoring pipeline
    feed_candidate_limit: int = int(os.getenv("FEED_CANDIDATE_LIMIT", "500"))
    feed_top_k: int = int(os.getenv("FEED_TOP_K", "200"))

    # Periodic recompute sweep (Celery beat)
    feed_sweep_interval_seconds: int = int(os.getenv("FEED_SWEEP_INTERVAL_SECONDS", str(60 * 60)))
    feed_sweep_max_users: int = int(os.getenv("FEED_SWEEP_MAX_USERS", "5000"))
    feed_task_soft_time_limit: int = int(os.getenv("FEED_TASK_SOFT_TIME_LIMIT", "120"))

    # Quota on the on-demand compute endpoint (per user)
    feed_compute_rate_limit: int = int(os.getenv("FEED_COMPUTE_RATE_LIMIT", "30"))
    feed_compute_rate_window: int = int(os.getenv("FEED_COMPUTE_RATE_WINDOW", "60"))

    # TVDB metadata proxy
    tvdb_api_key: str = os.getenv("TVDB_API_KEY", "")
    tvdb_base_url: str = os.getenv("TVDB_BASE_URL", "https://api4.thetvdb.com/v4")
    tvdb_token_ttl_seconds: int = int(os.getenv("TVDB_TOKEN_TTL_SECONDS", str(27 * 24 * 60 * 60)))  # 27 days
    tvdb_timeout_seconds: int = int(os.getenv("TVDB_TIMEOUT_SECONDS", "10"))

settings = Settings()
