"""
Fetch session and result models.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SessionStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SUPERSEDED = "superseded"
    CANCELED = "canceled"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FetchSession(BaseModel):
    id: int
    slot: str
    status: SessionStatus = SessionStatus.PENDING
    created_at: datetime = Field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not SessionStatus.PENDING


class FetchResult(BaseModel):
    """What a slot consumer receives: {ok: true, payload} or {ok: false, error}."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    ok: bool
    slot: str
    session_id: int
    payload: Any = None
    error: Optional[Exception] = None
    from_fallback: bool = False

    @classmethod
    def success(cls, slot: str, session_id: int, payload: Any, from_fallback: bool = False) -> "FetchResult":
        return cls(ok=True, slot=slot, session_id=session_id, payload=payload, from_fallback=from_fallback)

    @classmethod
    def failure(cls, slot: str, session_id: int, error: Exception) -> "FetchResult":
        return cls(ok=False, slot=slot, session_id=session_id, error=error)
