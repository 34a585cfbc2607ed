from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class ActivityEvent(BaseModel):
    """Client-reported activity posted to the realtime endpoint."""

    type: str = Field(..., min_length=1, description="Activity type")
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime | None = Field(
        None, description="When the activity happened; defaults to receipt time"
    )


class JobRecord(BaseModel):
    """Job record as written by the queue system.

    Keeps the queue's camelCase field names on the wire.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    status: str
    type: str | None = None
    user_id: str | None = Field(None, alias="userId")
    total_items: int = Field(0, alias="totalItems")
    processed_items: int = Field(0, alias="processedItems")
    results: Any = None
    error: str | None = None

    @property
    def progress(self) -> int:
        if self.total_items <= 0:
            return 0
        return round(self.processed_items / self.total_items * 100)
