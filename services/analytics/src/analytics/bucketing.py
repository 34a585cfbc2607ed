"""Day bucketing of timestamped store rows.

Rows are folded into one bucket per UTC calendar day. A bucket starts from
zeroed fields (plus any ``defaults``) and every ``Fold`` updates it:

- ``count``: +1 per row
- ``sum``: adds the source value (missing/None counts as 0)
- ``average``: sums, then divides by the bucket's row count when finalised
- ``tally``: +1 on the field named by the row's source value

When any average is folded the per-bucket row count is kept as ``count``.
Buckets are returned sorted by date.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Literal, Mapping, Sequence

from src.domain.errors import MalformedRecordError

FoldKind = Literal["count", "sum", "average", "tally"]
Source = str | Callable[[Mapping[str, Any]], Any] | None

OCCURRENCES = "count"


@dataclass(frozen=True)
class Fold:
    field: str
    kind: FoldKind
    source: Source = None

    def value(self, record: Mapping[str, Any]) -> Any:
        if self.source is None:
            return record.get(self.field)
        if callable(self.source):
            return self.source(record)
        return record.get(self.source)


def day_key(value: Any) -> str:
    """UTC calendar date (YYYY-MM-DD) of a datetime or ISO-8601 string."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise MalformedRecordError(f"unparseable timestamp: {value!r}") from exc
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    raise MalformedRecordError(f"missing or invalid timestamp: {value!r}")


def _number(value: Any) -> float:
    return value if isinstance(value, (int, float)) else 0


def bucket_by_day(
    records: Iterable[Mapping[str, Any]],
    folds: Sequence[Fold],
    defaults: Mapping[str, Any] | None = None,
    timestamp_field: str = "created_at",
) -> List[Dict[str, Any]]:
    track_occurrences = any(f.kind == "average" for f in folds)
    buckets: Dict[str, Dict[str, Any]] = {}

    for record in records:
        key = day_key(record.get(timestamp_field))
        bucket = buckets.get(key)
        if bucket is None:
            bucket = {"date": key, **(defaults or {})}
            for f in folds:
                if f.kind != "tally":
                    bucket.setdefault(f.field, 0)
            if track_occurrences:
                bucket[OCCURRENCES] = 0
            buckets[key] = bucket

        for f in folds:
            if f.kind == "count":
                bucket[f.field] += 1
            elif f.kind in ("sum", "average"):
                bucket[f.field] += _number(f.value(record))
            elif f.kind == "tally":
                name = f.value(record)
                if name is None:
                    continue
                bucket[str(name)] = bucket.get(str(name), 0) + 1
        if track_occurrences:
            bucket[OCCURRENCES] += 1

    averages = [f.field for f in folds if f.kind == "average"]
    for bucket in buckets.values():
        if averages and bucket.get(OCCURRENCES, 0) > 0:
            for name in averages:
                bucket[name] = bucket[name] / bucket[OCCURRENCES]

    return [buckets[k] for k in sorted(buckets)]
