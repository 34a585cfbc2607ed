from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import fakeredis
import fakeredis.aioredis
import pytest
from src.domain.errors import StoreUnavailableError
from src.domain.store import NOT_NULL


def _matches(value: Any, expected: Any) -> bool:
    if expected is NOT_NULL:
        return value is not None
    if isinstance(expected, (list, tuple, set, frozenset)):
        return value in expected
    return value == expected


class InMemoryStore:
    """AnalyticsStore over lists of row dicts, mimicking ClickHouse results."""

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        for name, rows in (tables or {}).items():
            self.tables[name].extend(rows)
        self.failing: set[str] = set()

    def add(self, table: str, **row: Any) -> None:
        self.tables[table].append(row)

    def _select(self, table, user_id, since, time_field, filters):
        if table in self.failing:
            raise StoreUnavailableError(f"{table} unavailable")
        rows = []
        for row in self.tables[table]:
            if user_id is not None and row.get("user_id") != user_id:
                continue
            if since is not None:
                stamp = row.get(time_field)
                if stamp is None or stamp < since:
                    continue
            if any(not _matches(row.get(c), v) for c, v in (filters or {}).items()):
                continue
            rows.append(row)
        return rows

    async def count(self, table, *, user_id=None, since=None, time_field="created_at", filters=None) -> int:
        return len(self._select(table, user_id, since, time_field, filters))

    async def group_count(self, table, by, *, user_id=None, since=None, time_field="created_at", filters=None):
        groups: Dict[tuple, int] = defaultdict(int)
        for row in self._select(table, user_id, since, time_field, filters):
            groups[tuple(row.get(c) for c in by)] += 1
        return [{**dict(zip(by, key)), "count": n} for key, n in groups.items()]

    async def aggregate(
        self,
        table,
        *,
        sums: Sequence[str] = (),
        avgs: Sequence[str] = (),
        by: Sequence[str] = (),
        user_id=None,
        since=None,
        time_field="created_at",
        filters=None,
    ):
        groups: Dict[tuple, List[Dict[str, Any]]] = defaultdict(list)
        selected = self._select(table, user_id, since, time_field, filters)
        if not by:
            groups[()] = selected
        for row in selected if by else ():
            groups[tuple(row.get(c) for c in by)].append(row)
        out = []
        for key, rows in groups.items():
            agg: Dict[str, Any] = {**dict(zip(by, key)), "count": len(rows)}
            for c in sums:
                values = [r[c] for r in rows if r.get(c) is not None]
                agg[f"sum_{c}"] = sum(values) if values else None
            for c in avgs:
                values = [r[c] for r in rows if r.get(c) is not None]
                agg[f"avg_{c}"] = sum(values) / len(values) if values else None
            out.append(agg)
        return out

    async def fetch_rows(
        self,
        table,
        columns,
        *,
        user_id=None,
        since=None,
        time_field="created_at",
        filters=None,
        order_by=None,
        descending=False,
        limit=None,
    ):
        rows = self._select(table, user_id, since, time_field, filters)
        if order_by:
            rows = sorted(rows, key=lambda r: r[order_by], reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return [{c: row.get(c) for c in columns} for row in rows]


@pytest.fixture
def now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def redis_client():
    return fakeredis.aioredis.FakeRedis(decode_responses=True, server=fakeredis.FakeServer())
