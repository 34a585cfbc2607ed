"""Read contract of the persistent analytical store.

Every query is scoped to one table, optionally to an owner (``user_id``) and
to rows whose ``time_field`` is at or after ``since``. ``filters`` maps column
names to a scalar (equality), a list/tuple/set (membership) or ``NOT_NULL``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence


class _NotNull:
    def __repr__(self) -> str:
        return "NOT_NULL"


NOT_NULL: Any = _NotNull()

Filters = Mapping[str, Any]
Row = Dict[str, Any]


class AnalyticsStore(Protocol):
    async def count(
        self,
        table: str,
        *,
        user_id: Optional[str] = None,
        since: Optional[datetime] = None,
        time_field: str = "created_at",
        filters: Optional[Filters] = None,
    ) -> int: ...

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
        """Rows of the ``by`` columns plus ``count``."""
        ...

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
        """Rows with ``count``, ``sum_<col>`` and ``avg_<col>`` (None when empty)."""
        ...

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
    ) -> List[Row]: ...
