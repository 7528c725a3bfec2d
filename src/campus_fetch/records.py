"""
Records API: the Apps Script actions behind the admin screens.

Reads go through the client's read transport with the retry policy; writes
are single-attempt POSTs over http.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Iterable, Optional

from campus_fetch.errors import ActionError

if TYPE_CHECKING:
    from campus_fetch.client import AsyncCampusClient

logger = logging.getLogger(__name__)

NAME_KEYS = ("StudentName", "studentName", "Student", "student", "ApplicantName", "applicantName",
             "Applicant", "applicant", "Name", "name")
APPLICATION_ID_KEYS = ("ApplicationID", "applicationId", "ApplicationId")
ENRICH_BATCH_LIMIT = 15


def pick(record: Any, keys: Iterable[str]) -> Any:
    """First non-empty value among `keys` (sheet headers vary in casing)."""
    if not isinstance(record, dict):
        return None
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


def pick_list(payload: Any, *keys: str) -> list[Any]:
    """A bare list payload, or the first list found under `keys`."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in keys:
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []


def student_name(details: Any) -> Optional[str]:
    """Display name from a getStudentDetails payload ({student: {...}})."""
    if not isinstance(details, dict):
        return None
    student = details.get("student") or details.get("Student") or {}
    name = pick(student, ("name", "Name", "fullName", "FullName"))
    if name:
        return str(name)
    parts = [pick(student, ("firstName", "FirstName")), pick(student, ("lastName", "LastName"))]
    joined = " ".join(str(p) for p in parts if p).strip()
    return joined or None


def _check_read(payload: Any) -> Any:
    if isinstance(payload, dict) and payload.get("error"):
        raise ActionError(f"Error fetching data: {payload['error']}", details=payload)
    return payload


def _check_write(payload: Any, default_message: str) -> dict[str, Any]:
    if isinstance(payload, dict) and payload.get("result") == "success":
        return payload
    message = None
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error")
    raise ActionError(str(message or default_message), details=payload if isinstance(payload, dict) else None)


class RecordsAPI:
    def __init__(self, client: AsyncCampusClient):
        self._client = client

    async def dashboard(self) -> dict[str, list[Any]]:
        """Bare-endpoint read: submissions, rooms and fees."""
        return normalize_dashboard(_check_read(await self._client.request()))

    async def students_and_hostels(self) -> dict[str, list[Any]]:
        payload = _check_read(await self._client.request("getStudentsAndHostels"))
        return {"students": pick_list(payload, "students"), "rooms": pick_list(payload, "rooms")}

    async def students_and_library(self) -> dict[str, list[Any]]:
        payload = _check_read(await self._client.request("getStudentsAndLibrary"))
        return {"students": pick_list(payload, "students"), "books": pick_list(payload, "books")}

    async def fees(self) -> list[Any]:
        payload = _check_read(await self._client.request("getFees"))
        return pick_list(payload, "transactions", "fees")

    async def student_details(self, application_id: str) -> Any:
        return _check_read(await self._client.request("getStudentDetails", {"id": application_id}))

    async def search_students(self, query: str) -> Any:
        q = query.strip()
        if not q:
            raise ValueError("Enter name, email, mobile or application id")
        return _check_read(await self._client.request("searchStudents", {"q": q}))

    async def fee_student_names(self, transactions: list[Any], limit: int = ENRICH_BATCH_LIMIT) -> dict[str, str]:
        """Look up names for fee rows that only carry an application id."""
        wanted: list[str] = []
        for txn in transactions:
            app_id = pick(txn, APPLICATION_ID_KEYS)
            if app_id and not pick(txn, NAME_KEYS) and str(app_id) not in wanted:
                wanted.append(str(app_id))
                if len(wanted) >= limit:
                    break
        if not wanted:
            return {}

        results = await asyncio.gather(*(self.student_details(a) for a in wanted), return_exceptions=True)
        names: dict[str, str] = {}
        for app_id, details in zip(wanted, results):
            if isinstance(details, BaseException):
                logger.debug("Name lookup for %s failed: %s", app_id, details)
                continue
            name = student_name(details)
            if name:
                names[app_id] = name
        return names

    async def assign_hostel_room(self, student_id: str, room_number: str) -> dict[str, Any]:
        payload = await self._client.post("assignHostelRoom", {"studentId": student_id, "roomNumber": room_number})
        return _check_write(payload, "Failed to assign room.")

    async def issue_book(self, student_id: str, book_id: str) -> dict[str, Any]:
        payload = await self._client.post("issueBook", {"studentId": student_id, "bookId": book_id})
        return _check_write(payload, "Failed to issue book.")

    async def return_book(self, book_id: str) -> dict[str, Any]:
        payload = await self._client.post("returnBook", {"bookId": book_id})
        return _check_write(payload, "Failed to return book.")

    async def submit_admission(self, fields: dict[str, Any]) -> str:
        """Submit an admission form; returns the new application id."""
        payload = await self._client.post("submitAdmission", fields)
        result = _check_write(payload, "An unknown error occurred in the script.")
        return str(result.get("applicationId", ""))


PAID_STATUSES = {"paid", "completed", "success", "successful"}


def is_paid(status: Any) -> bool:
    return isinstance(status, str) and status.strip().lower() in PAID_STATUSES


def normalize_dashboard(payload: Any) -> dict[str, list[Any]]:
    """Split the bare-endpoint payload into submissions, rooms and fees.

    Older deployments answer with a bare list of submissions.
    """
    if isinstance(payload, list):
        return {"submissions": payload, "rooms": [], "fees": []}
    return {
        "submissions": pick_list(payload, "submissions"),
        "rooms": pick_list(payload, "rooms"),
        "fees": pick_list(payload, "fees"),
    }
