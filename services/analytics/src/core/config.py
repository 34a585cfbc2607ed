from shared.config import BaseServiceConfig


class Settings(BaseServiceConfig):
    # ClickHouse (persistent analytical store)
    clickhouse_host: str = "clickhouse"
    clickhouse_port: int = 8123
    clickhouse_db: str = "contextforge"
    clickhouse_user: str = "default"
    clickhouse_password: str = ""
    clickhouse_query_timeout_seconds: int = 30

    # Realtime counters
    recent_activity_capacity: int = 20
    recent_activity_ttl_seconds: int = 86400  # 24h
    request_window_ms: int = 60_000  # trailing minute
    request_window_ttl_seconds: int = 300  # orphaned window safety net
    response_time_ema_weight: float = 0.9
    active_alerts_limit: int = 10

    # Analytics requests
    default_time_range: str = "30d"
    recent_items_limit: int = 10

    # Startup
    redis_connect_retries: int = 6

    otel_service_name: str = "analytics"


settings = Settings()
