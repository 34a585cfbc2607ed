from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Generic, Mapping, Tuple, TypeVar

from redis.exceptions import RedisError
from src.core.logger import get_logger
from src.core.metrics import DEGRADED_SECTIONS
from src.domain.errors import StoreUnavailableError

logger = get_logger("analytics.results")

T = TypeVar("T")

# Store failures that degrade a section instead of failing the request.
DEGRADABLE_ERRORS = (StoreUnavailableError, RedisError)


@dataclass(frozen=True)
class SectionResult(Generic[T]):
    """Outcome of one payload section.

    ``error`` is None for a fully computed section. A degraded section carries
    its default data plus the cause, so callers can tell "zero usage" from
    "metrics unavailable".
    """

    data: T
    error: str | None = None

    @property
    def degraded(self) -> bool:
        return self.error is not None

    @classmethod
    def ok(cls, data: T) -> "SectionResult[T]":
        return cls(data=data)

    @classmethod
    def degraded_with(cls, data: T, cause: BaseException) -> "SectionResult[T]":
        return cls(data=data, error=f"{type(cause).__name__}: {cause}")


async def guarded(
    payload: str, section: str, work: Awaitable[T], default: T
) -> SectionResult[T]:
    try:
        return SectionResult.ok(await work)
    except DEGRADABLE_ERRORS as exc:
        DEGRADED_SECTIONS.labels(payload=payload, section=section).inc()
        logger.warning(
            "section_degraded",
            extra={"payload": payload, "section": section, "error": str(exc)},
        )
        return SectionResult.degraded_with(default, exc)


def status_block(sections: Mapping[str, SectionResult[Any]]) -> Dict[str, Any]:
    return {
        "degraded": any(r.degraded for r in sections.values()),
        "sections": {
            name: "degraded" if r.degraded else "ok" for name, r in sections.items()
        },
        "errors": {name: r.error for name, r in sections.items() if r.degraded},
    }


async def gather_sections(
    payload: str, sections: Mapping[str, Tuple[Awaitable[Any], Any]]
) -> Dict[str, SectionResult[Any]]:
    """Run independent sections concurrently; each degrades on its own."""
    names = list(sections)
    results = await asyncio.gather(
        *(guarded(payload, name, *sections[name]) for name in names)
    )
    return dict(zip(names, results))
