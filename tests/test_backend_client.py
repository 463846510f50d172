import asyncio

import httpx
import pytest

from app.domain.bookings.statuses import BookingStatus
from app.infra.backend import BackendClient, BackendError, eq, in_, normalize_relations, unwrap_relation


def test_select_sends_credentials_and_query(fake_backend, backend_client):
    fake_backend.tables["tours"] = [{"id": "t1", "name": "Sunset"}]

    rows = asyncio.run(
        backend_client.select("tours", "id, name", filters=[eq("id", "t1")], order="name.asc", limit=5)
    )

    assert rows == [{"id": "t1", "name": "Sunset"}]
    request = fake_backend.requests[0]
    assert request.headers["apikey"] == "test-key"
    assert request.headers["authorization"] == "Bearer test-key"
    assert request.params == [("select", "id, name"), ("id", "eq.t1"), ("order", "name.asc"), ("limit", "5")]


def test_filter_helpers_format_values():
    assert eq("status", BookingStatus.PAID) == ("status", "eq.PAID")
    assert eq("active", True) == ("active", "eq.true")
    assert in_("status", [BookingStatus.PAID, "CONFIRMED"]) == ("status", "in.(PAID,CONFIRMED)")


def test_relations_collapse_to_single_objects():
    assert unwrap_relation([{"name": "a"}, {"name": "b"}]) == {"name": "a"}
    assert unwrap_relation([]) is None
    assert unwrap_relation("junk") is None
    row = normalize_relations({"id": "1", "tours": [{"name": "a"}], "slots": None}, "tours", "slots")
    assert row == {"id": "1", "tours": {"name": "a"}, "slots": None}


def test_failed_select_raises_backend_error(fake_backend, backend_client):
    fake_backend.failures["bookings"] = (400, {"message": "column bookings.nope does not exist"})

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(backend_client.select("bookings"))

    assert excinfo.value.status_code == 400
    assert "does not exist" in excinfo.value.message


def test_unfiltered_update_is_refused(fake_backend, backend_client):
    with pytest.raises(BackendError):
        asyncio.run(backend_client.update("bookings", {"status": "PAID"}, filters=[]))

    assert fake_backend.requests == []


def test_count_reads_content_range(fake_backend, backend_client):
    fake_backend.counts["conversations"] = 4

    assert asyncio.run(backend_client.count("conversations", [eq("status", "HUMAN")])) == 4
    assert asyncio.run(backend_client.count("bookings")) == 0
    assert fake_backend.requests[0].headers["prefer"] == "count=exact"


def test_invoke_reports_function_errors_without_raising(fake_backend, backend_client):
    fake_backend.functions["process-refund"] = (500, {"error": "Provider declined"})
    fake_backend.functions["send-invoice"] = (200, {"error": "No email on file"})

    refund = asyncio.run(backend_client.invoke("process-refund", {"booking_id": "b1"}))
    invoice = asyncio.run(backend_client.invoke("send-invoice", {"booking_id": "b1"}))

    assert (refund.ok, refund.message) == (False, "Provider declined")
    assert (invoice.ok, invoice.message) == (False, "No email on file")
    assert fake_backend.requests[0].body == {"booking_id": "b1"}


def test_invoke_falls_back_to_reason_phrase():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="down")

    client = BackendClient("http://backend.test", "k", transport=httpx.MockTransport(handler))

    result = asyncio.run(client.invoke("broadcast", {}))

    assert result.ok is False
    assert result.message == "Service Unavailable"


def test_invoke_transport_failure_is_a_failed_result():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = BackendClient("http://backend.test", "k", transport=httpx.MockTransport(handler))

    result = asyncio.run(client.invoke("broadcast", {}))

    assert result.ok is False
    assert "connection refused" in result.message
