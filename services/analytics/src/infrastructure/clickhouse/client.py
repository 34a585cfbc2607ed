import asyncio
import math
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import clickhouse_connect
from clickhouse_connect.driver.client import Client
from clickhouse_connect.driver.exceptions import ClickHouseError
from src.core.config import settings
from src.core.logger import get_logger
from src.domain.errors import StoreUnavailableError
from src.domain.store import NOT_NULL, Filters, Row

from .schema import check_columns

logger = get_logger("clickhouse_store")


def _default_client() -> Client:
    return clickhouse_connect.get_client(
        host=settings.clickhouse_host,
        port=settings.clickhouse_port,
        database=settings.clickhouse_db,
        username=settings.clickhouse_user,
        password=settings.clickhouse_password,
        interface="http",
        send_receive_timeout=settings.clickhouse_query_timeout_seconds,
        # handlers fan out several queries at once over one client
        autogenerate_session_id=False,
    )


def _clean(value: Any) -> Any:
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


class ClickHouseAnalyticsStore:
    """AnalyticsStore backed by ClickHouse over HTTP.

    The client is created on first use so the service starts (and serves
    degraded payloads) while ClickHouse is down. Driver calls are blocking
    and run in worker threads.
    """

    def __init__(self, client_factory: Optional[Callable[[], Client]] = None):
        self._client_factory = client_factory or _default_client
        self._client: Optional[Client] = None
        self._lock = threading.Lock()

    # AnalyticsStore
    async def count(
        self,
        table: str,
        *,
        user_id: Optional[str] = None,
        since: Optional[datetime] = None,
        time_field: str = "created_at",
        filters: Optional[Filters] = None,
    ) -> int:
        where, params = self._where(table, user_id, since, time_field, filters)
        rows = await self._query(f"SELECT count() AS count FROM {table}{where}", params)
        return int(rows[0]["count"]) if rows else 0

    async def group_count(
        self,
        table: str,
        by: Sequence[str],
        *,
        user_id: Optional[str] = None,
        since: Optional[datetime] = None,
        time_field: str = "created_at",
        filters: Optional[Filters] = None,
    ) -> List[Row]:
        check_columns(table, *by)
        where, params = self._where(table, user_id, since, time_field, filters)
        cols = ", ".join(by)
        sql = f"SELECT {cols}, count() AS count FROM {table}{where} GROUP BY {cols}"
        return await self._query(sql, params)

    async def aggregate(
        self,
        table: str,
        *,
        sums: Sequence[str] = (),
        avgs: Sequence[str] = (),
        by: Sequence[str] = (),
        user_id: Optional[str] = None,
        since: Optional[datetime] = None,
        time_field: str = "created_at",
        filters: Optional[Filters] = None,
    ) -> List[Row]:
        check_columns(table, *sums, *avgs, *by)
        where, params = self._where(table, user_id, since, time_field, filters)
        select = list(by) + ["count() AS count"]
        select += [f"sumOrNull({c}) AS sum_{c}" for c in sums]
        select += [f"avgOrNull({c}) AS avg_{c}" for c in avgs]
        sql = f"SELECT {', '.join(select)} FROM {table}{where}"
        if by:
            sql += f" GROUP BY {', '.join(by)}"
        return await self._query(sql, params)

    async def fetch_rows(
        self,
        table: str,
        columns: Sequence[str],
        *,
        user_id: Optional[str] = None,
        since: Optional[datetime] = None,
        time_field: str = "created_at",
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        check_columns(table, *columns)
        where, params = self._where(table, user_id, since, time_field, filters)
        sql = f"SELECT {', '.join(columns)} FROM {table}{where}"
        if order_by:
            check_columns(table, order_by)
            sql += f" ORDER BY {order_by} {'DESC' if descending else 'ASC'}"
        if limit is not None:
            sql += " LIMIT %(limit)s"
            params["limit"] = int(limit)
        return await self._query(sql, params)

    def close(self):
        with self._lock:
            client, self._client = self._client, None
        if client is not None:
            try:
                client.close()
            except Exception as e:  # noqa: BLE001
                logger.warning("Error closing ClickHouse client", extra={"error": str(e)})

    # Internals
    def _where(
        self,
        table: str,
        user_id: Optional[str],
        since: Optional[datetime],
        time_field: str,
        filters: Optional[Filters],
    ) -> Tuple[str, Dict[str, Any]]:
        conditions: List[str] = []
        params: Dict[str, Any] = {}
        if user_id is not None:
            check_columns(table, "user_id")
            conditions.append("user_id = %(user_id)s")
            params["user_id"] = user_id
        if since is not None:
            check_columns(table, time_field)
            conditions.append(f"{time_field} >= %(since)s")
            params["since"] = since
        for i, (column, value) in enumerate((filters or {}).items()):
            check_columns(table, column)
            name = f"f{i}"
            if value is NOT_NULL:
                conditions.append(f"isNotNull({column})")
            elif isinstance(value, (list, tuple, set, frozenset)):
                conditions.append(f"{column} IN %({name})s")
                params[name] = tuple(value)
            else:
                conditions.append(f"{column} = %({name})s")
                params[name] = value
        if not conditions:
            return "", params
        return " WHERE " + " AND ".join(conditions), params

    def _get_client(self) -> Client:
        with self._lock:
            if self._client is None:
                self._client = self._client_factory()
                logger.info("clickhouse_connected")
            return self._client

    def _run(self, sql: str, params: Dict[str, Any]) -> List[Row]:
        try:
            result = self._get_client().query(sql, parameters=params)
            return [
                {k: _clean(v) for k, v in row.items()}
                for row in result.named_results()
            ]
        except (ClickHouseError, OSError) as e:
            logger.error("clickhouse_query_failed", extra={"error": str(e)})
            raise StoreUnavailableError(str(e)) from e

    async def _query(self, sql: str, params: Dict[str, Any]) -> List[Row]:
        return await asyncio.to_thread(self._run, sql, params)
