"""Records API: action names, payload shapes, write semantics."""

import json

import httpx
import pytest

from campus_fetch.client import AsyncCampusClient
from campus_fetch.errors import ActionError, ExhaustedError
from campus_fetch.models.request import RetryPolicy
from campus_fetch.records import is_paid, normalize_dashboard, pick, pick_list, student_name

from conftest import BASE_URL

FAST = RetryPolicy(max_attempts=2, per_attempt_timeout_ms=1000, backoff_ms=0)


def make_client(mock_http, handler):
    return AsyncCampusClient(BASE_URL, transport="http", policy=FAST, http_client=mock_http(handler))


def test_pick_skips_empty_values():
    record = {"StudentName": "", "studentName": None, "Name": "Asha"}
    assert pick(record, ("StudentName", "studentName", "Name")) == "Asha"
    assert pick("not a record", ("Name",)) is None


def test_pick_list_accepts_bare_list_or_keyed_list():
    assert pick_list([1, 2], "fees") == [1, 2]
    assert pick_list({"transactions": [3]}, "transactions", "fees") == [3]
    assert pick_list({"fees": "oops"}, "fees") == []
    assert pick_list(None, "fees") == []


def test_student_name_variants():
    assert student_name({"student": {"name": "Ravi Kumar"}}) == "Ravi Kumar"
    assert student_name({"Student": {"FirstName": "Ravi", "LastName": "Kumar"}}) == "Ravi Kumar"
    assert student_name({"student": {}}) is None
    assert student_name([]) is None


def test_is_paid():
    assert is_paid(" Paid ")
    assert is_paid("successful")
    assert not is_paid("pending")
    assert not is_paid(None)


def test_normalize_dashboard_shapes():
    assert normalize_dashboard([{"Name": "A"}]) == {"submissions": [{"Name": "A"}], "rooms": [], "fees": []}
    payload = {"submissions": [1], "rooms": [2], "fees": [3]}
    assert normalize_dashboard(payload) == {"submissions": [1], "rooms": [2], "fees": [3]}
    assert normalize_dashboard({}) == {"submissions": [], "rooms": [], "fees": []}


@pytest.mark.asyncio
async def test_fees_reads_transactions(mock_http):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"transactions": [{"Amount": 1200, "Status": "Paid"}]})

    client = make_client(mock_http, handler)
    assert await client.records.fees() == [{"Amount": 1200, "Status": "Paid"}]
    assert seen[0].url.params["action"] == "getFees"
    await client.close()


@pytest.mark.asyncio
async def test_dashboard_uses_bare_endpoint(mock_http):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"submissions": [{"Name": "A"}], "rooms": [], "fees": []})

    client = make_client(mock_http, handler)
    data = await client.records.dashboard()
    assert data["submissions"] == [{"Name": "A"}]
    assert "action" not in seen[0].url.params
    await client.close()


@pytest.mark.asyncio
async def test_error_payload_raises_action_error(mock_http):
    client = make_client(mock_http, lambda r: httpx.Response(200, json={"error": "Sheet not found"}))
    with pytest.raises(ActionError, match="Error fetching data: Sheet not found"):
        await client.records.students_and_hostels()
    await client.close()


@pytest.mark.asyncio
async def test_students_and_library_split(mock_http):
    payload = {"students": [{"ApplicationID": "A1"}], "books": [{"BookId": "B1"}]}
    client = make_client(mock_http, lambda r: httpx.Response(200, json=payload))
    assert await client.records.students_and_library() == payload
    await client.close()


@pytest.mark.asyncio
async def test_blank_search_is_rejected_locally(mock_http):
    seen = []
    client = make_client(mock_http, lambda r: seen.append(r) or httpx.Response(200, json=[]))
    with pytest.raises(ValueError, match="Enter name, email, mobile or application id"):
        await client.records.search_students("   ")
    assert seen == []
    await client.close()


@pytest.mark.asyncio
async def test_search_trims_query(mock_http):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"students": []})

    client = make_client(mock_http, handler)
    await client.records.search_students("  asha ")
    assert dict(seen[0].url.params) == {"action": "searchStudents", "q": "asha"}
    await client.close()


@pytest.mark.asyncio
async def test_assign_hostel_room_posts_json_body(mock_http):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"result": "success"})

    client = make_client(mock_http, handler)
    assert await client.records.assign_hostel_room("APP-9", "B-204") == {"result": "success"}

    request = seen[0]
    assert request.method == "POST"
    assert request.headers["content-type"].startswith("text/plain")
    assert json.loads(request.content) == {"action": "assignHostelRoom", "studentId": "APP-9", "roomNumber": "B-204"}
    await client.close()


@pytest.mark.asyncio
async def test_write_failure_message_comes_from_payload(mock_http):
    payload = {"result": "error", "message": "Room is full"}
    client = make_client(mock_http, lambda r: httpx.Response(200, json=payload))
    with pytest.raises(ActionError, match="Room is full"):
        await client.records.issue_book("APP-9", "BK-1")
    await client.close()


@pytest.mark.asyncio
async def test_write_failure_default_message(mock_http):
    client = make_client(mock_http, lambda r: httpx.Response(200, json={}))
    with pytest.raises(ActionError, match="Failed to return book."):
        await client.records.return_book("BK-1")
    await client.close()


@pytest.mark.asyncio
async def test_writes_are_not_retried(mock_http):
    seen = []
    client = make_client(mock_http, lambda r: seen.append(r) or httpx.Response(500, text="boom"))
    with pytest.raises(ExhaustedError) as exc_info:
        await client.records.assign_hostel_room("APP-9", "B-204")
    assert exc_info.value.attempts == 1
    assert len(seen) == 1
    await client.close()


@pytest.mark.asyncio
async def test_submit_admission_returns_application_id(mock_http):
    client = make_client(mock_http, lambda r: httpx.Response(200, json={"result": "success", "applicationId": 1042}))
    assert await client.records.submit_admission({"name": "Asha", "course": "BSc"}) == "1042"
    await client.close()


@pytest.mark.asyncio
async def test_fee_student_names_enriches_missing_names(mock_http):
    lookups = []

    def handler(request: httpx.Request) -> httpx.Response:
        app_id = request.url.params["id"]
        lookups.append(app_id)
        if app_id == "A2":
            return httpx.Response(200, json={"error": "not found"})
        return httpx.Response(200, json={"student": {"name": f"Student {app_id}"}})

    client = make_client(mock_http, handler)
    transactions = [
        {"ApplicationID": "A1"},
        {"ApplicationID": "A1"},
        {"applicationId": "A2"},
        {"ApplicationID": "A3", "StudentName": "Named"},
    ]
    names = await client.records.fee_student_names(transactions)

    assert names == {"A1": "Student A1"}
    assert sorted(lookups) == ["A1", "A2"]
    await client.close()


@pytest.mark.asyncio
async def test_fee_student_names_respects_limit(mock_http):
    lookups = []

    def handler(request: httpx.Request) -> httpx.Response:
        lookups.append(request.url.params["id"])
        return httpx.Response(200, json={"student": {"name": "x"}})

    client = make_client(mock_http, handler)
    transactions = [{"ApplicationID": f"A{i}"} for i in range(20)]
    names = await client.records.fee_student_names(transactions, limit=5)
    assert len(names) == 5
    assert len(lookups) == 5
    await client.close()
