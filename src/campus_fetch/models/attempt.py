"""
Attempt record: one try of the transport call inside a RetryingCall.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class AttemptOutcome(str, Enum):
    OK = "ok"
    TIMEOUT = "timeout"
    TRANSPORT_ERROR = "transport_error"


class Attempt(BaseModel):
    session_id: int
    sequence: int
    deadline: float  # event-loop time
    outcome: Optional[AttemptOutcome] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.outcome in (AttemptOutcome.TIMEOUT, AttemptOutcome.TRANSPORT_ERROR)
