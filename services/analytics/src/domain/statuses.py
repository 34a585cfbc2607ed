"""Closed sets of status strings written by external systems.

Rows carrying a status outside these sets are reported under ``unknown``
rather than silently dropped from counts.
"""

from __future__ import annotations

from enum import Enum
from typing import Type, TypeVar

from src.core.logger import get_logger
from src.core.metrics import UNKNOWN_STATUSES

logger = get_logger("analytics.statuses")

E = TypeVar("E", bound=Enum)

UNKNOWN = "unknown"


class OptimizationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class WorkflowStatus(str, Enum):
    """Workflow queue job statuses as stored in the persistent store."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    RETRY = "retry"


class JobStatus(str, Enum):
    """Job statuses exposed to pollers."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


def parse_status(enum_cls: Type[E], value: object) -> E | None:
    """Map a raw status string onto ``enum_cls``; None when it is not a member."""
    try:
        return enum_cls(value)
    except ValueError:
        UNKNOWN_STATUSES.labels(entity=enum_cls.__name__).inc()
        logger.warning(
            "unknown_status",
            extra={"entity": enum_cls.__name__, "status": str(value)},
        )
        return None


def status_label(enum_cls: Type[E], value: object) -> str:
    status = parse_status(enum_cls, value)
    return status.value if status is not None else UNKNOWN
