"""Task Failure Model - Best-effort side effects that did not complete."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ecoride.utils.timezone_utils import utc_now


class TaskFailure(BaseModel):
    """
    One failed post-commit task, kept for support reconciliation.

    Fields:
    - failure_id: Unique UUID
    - context: Operation that committed (e.g. "complete_trip")
    - task: Task name (e.g. "reward_passenger")
    - error: Error summary
    - trip_id / booking_id / user_id: References for follow-up
    """

    failure_id: str
    context: str
    task: str
    error: str
    trip_id: Optional[str] = None
    booking_id: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
