"""
campus-fetch: stale-safe, retrying, cancelable fetch client for the college
admin Apps Script backend.
"""

from campus_fetch.client import AsyncCampusClient, CampusClient
from campus_fetch.config import Settings
from campus_fetch.errors import (
    ActionError,
    CampusFetchError,
    ConfigError,
    ExhaustedError,
    FetchTimeoutError,
    TransportError,
)
from campus_fetch.models.request import FetchRequest, RetryPolicy
from campus_fetch.models.session import FetchResult, FetchSession, SessionStatus
from campus_fetch.retry import RetryingCall
from campus_fetch.sessions import FetchSessionManager
from campus_fetch.transport.bridge import CallbackBridgeTransport
from campus_fetch.transport.hooks import HookRegistry
from campus_fetch.transport.http import HttpTransport

__version__ = "0.1.0"
__all__ = [
    "AsyncCampusClient",
    "CampusClient",
    "Settings",
    "CampusFetchError",
    "ConfigError",
    "TransportError",
    "FetchTimeoutError",
    "ExhaustedError",
    "ActionError",
    "FetchRequest",
    "RetryPolicy",
    "FetchResult",
    "FetchSession",
    "SessionStatus",
    "RetryingCall",
    "FetchSessionManager",
    "CallbackBridgeTransport",
    "HookRegistry",
    "HttpTransport",
]
