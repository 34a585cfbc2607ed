class RedisKeys:
    """Centralised Redis key pattern definitions"""

    # Per-user realtime state
    USER_METRICS_HASH = "user:{user_id}:realtime_metrics"
    USER_RECENT_ACTIVITY_LIST = "user:{user_id}:recent_activity"
    USER_REQUEST_WINDOW_ZSET = "user:{user_id}:requests_window"
    USER_ACTIVE_JOBS_HASH = "user:{user_id}:active_jobs"
    USER_ALERTS_LIST = "user:{user_id}:alerts"

    # System-wide metrics written by the worker fleet
    SYSTEM_METRICS_HASH = "system:realtime_metrics"

    # Job records written by the queue
    JOB_RECORD = "job:{job_id}"

    # Api token -> user id
    AUTH_TOKEN = "auth:token:{token}"

    @classmethod
    def user_key(cls, kind: str, user_id: str) -> str:
        """Generate a per-user key for the given kind."""
        patterns = {
            "metrics": cls.USER_METRICS_HASH,
            "recent_activity": cls.USER_RECENT_ACTIVITY_LIST,
            "requests_window": cls.USER_REQUEST_WINDOW_ZSET,
            "active_jobs": cls.USER_ACTIVE_JOBS_HASH,
            "alerts": cls.USER_ALERTS_LIST,
        }
        pattern = patterns.get(kind)
        if not pattern:
            raise ValueError(f"Unknown user key kind: {kind}")
        return pattern.format(user_id=user_id)

    @classmethod
    def job_key(cls, job_id: str) -> str:
        return cls.JOB_RECORD.format(job_id=job_id)

    @classmethod
    def token_key(cls, token: str) -> str:
        return cls.AUTH_TOKEN.format(token=token)
