"""
Request and retry-policy models.
"""

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Primitive = Union[str, int, float, bool, None]


class FetchRequest(BaseModel):
    """One logical call against the scripting endpoint.

    `action=None` addresses the bare endpoint (the dashboard read).
    """

    model_config = ConfigDict(frozen=True)

    action: Optional[str] = None
    params: dict[str, Primitive] = Field(default_factory=dict)
    method: Literal["GET", "POST"] = "GET"

    def query(self) -> dict[str, str]:
        """Query-string mapping for GET; action first, None values dropped."""
        query: dict[str, str] = {}
        if self.action:
            query["action"] = self.action
        for key, value in self.params.items():
            if value is None:
                continue
            if isinstance(value, bool):
                query[key] = "true" if value else "false"
            else:
                query[key] = str(value)
        return query

    def body(self) -> dict[str, Any]:
        """JSON body for POST: {"action": ..., **params}."""
        body: dict[str, Any] = {}
        if self.action:
            body["action"] = self.action
        body.update(self.params)
        return body


class RetryPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=2, ge=1)
    per_attempt_timeout_ms: int = Field(default=12000, gt=0)
    backoff_ms: int = Field(default=800, ge=0)
    jitter_ms: int = Field(default=0, ge=0)

    @property
    def timeout_s(self) -> float:
        return self.per_attempt_timeout_ms / 1000.0
