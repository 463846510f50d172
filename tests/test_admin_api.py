import base64


def basic_auth(username: str = "admin", password: str = "paddle-hard") -> dict[str, str]:
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


def test_admin_routes_require_credentials(client):
    response = client.get("/v1/admin/dashboard", headers={"Authorization": ""})

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Basic"
    assert response.json()["title"] == "Invalid authentication"


def test_wrong_password_is_rejected(client):
    response = client.get("/v1/admin/refunds", headers=basic_auth(password="wrong"))

    assert response.status_code == 401


def test_unconfigured_password_rejects_everyone(client, app_settings):
    app_settings.admin_password_sha256 = None

    response = client.get("/v1/admin/refunds")

    assert response.status_code == 401


def test_dashboard(client, fake_backend):
    fake_backend.tables["bookings"] = [
        {"id": "b1", "qty": 2, "total_amount": 500, "status": "PAID", "slots": {"start_time": "2024-06-01T07:00:00Z"}},
    ]
    fake_backend.counts["conversations"] = 3

    response = client.get("/v1/admin/dashboard")

    assert response.status_code == 200
    payload = response.json()
    assert payload["day_key"] == "2024-06-01"
    assert payload["stats"]["pax"] == 2
    assert payload["inbox_waiting"] == 3


def test_bookings_list_groups_by_day(client, fake_backend):
    fake_backend.tables["bookings"] = [
        {"id": "b1", "qty": 2, "total_amount": 500, "status": "PAID", "slots": {"start_time": "2024-06-01T09:00:00Z"}},
        {"id": "b2", "qty": 1, "total_amount": 250, "status": "PENDING", "slots": {"start_time": "2024-06-01T09:00:00Z"}},
    ]

    response = client.get("/v1/admin/bookings", params={"start": "2024-06-01", "end": "2024-06-02"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["range"]["start"].startswith("2024-06-01T00:00:00")
    day = payload["days"][0]
    assert day["day_key"] == "2024-06-01"
    slot = day["slots"][0]
    assert slot["party_size"] == 3
    assert float(slot["billed"]) == 750
    assert float(slot["paid"]) == 500
    assert float(slot["due"]) == 250


def test_booking_actions(client, fake_backend):
    assert client.post("/v1/admin/bookings/b1/mark-paid").json()["ok"] is True
    assert client.post("/v1/admin/bookings/b1/cancel").json()["message"] == "Booking cancelled."

    patches = fake_backend.calls("PATCH", "/rest/v1/bookings")
    assert patches[0].body == {"status": "PAID"}
    assert patches[1].body["cancelled_at"] == "2024-06-01T08:00:00+00:00"


def test_booking_update_validates_status(client):
    response = client.patch("/v1/admin/bookings/b1", json={"status": "LOST"})

    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "status"


def test_missing_booking_is_a_domain_error(client):
    response = client.post("/v1/admin/bookings/missing/refund")

    assert response.status_code == 400
    assert response.json()["detail"] == "Booking not found"


def test_refund_failure_is_reported_in_body(client, fake_backend):
    fake_backend.tables["bookings"] = [{"id": "b1", "total_amount": 500, "yoco_checkout_id": "ch_1"}]
    fake_backend.functions["process-refund"] = (502, {"error": "Gateway timeout"})

    response = client.post("/v1/admin/bookings/b1/refund")

    assert response.status_code == 200
    assert response.json()["ok"] is False
    assert response.json()["message"] == "Auto refund failed: Gateway timeout"


def test_backend_failure_maps_to_bad_gateway(client, fake_backend):
    fake_backend.failures["bookings"] = (503, {"message": "store offline"})

    response = client.get("/v1/admin/refunds")

    assert response.status_code == 502
    assert response.json()["detail"] == "store offline"
    assert response.headers["content-type"].startswith("application/json")


def test_slot_toggle(client, fake_backend):
    fake_backend.tables["slots"] = [{"id": "s1", "status": "CLOSED", "start_time": "2024-06-01T07:00:00Z"}]

    response = client.post("/v1/admin/slots/s1/toggle")

    assert response.json() == {"id": "s1", "status": "OPEN"}


def test_slots_week_view(client, fake_backend):
    fake_backend.tables["slots"] = [
        {"id": "s1", "status": "OPEN", "start_time": "2024-06-01T07:00:00Z", "capacity_total": 10, "booked": 4, "held": 1},
    ]

    response = client.get("/v1/admin/slots")

    payload = response.json()
    assert payload["start"].startswith("2024-05-27T00:00:00")
    assert payload["days"][0]["day_key"] == "2024-06-01"
    assert payload["days"][0]["slots"][0]["available"] == 5


def test_broadcast_requires_message(client):
    response = client.post("/v1/admin/broadcasts", json={"message": " ", "slot_ids": ["s1"]})

    assert response.status_code == 400
    assert response.json()["detail"] == "Broadcast message is empty"


def test_broadcast_calendar_lists_current_month(client, fake_backend):
    fake_backend.tables["slots"] = [
        {"id": "s1", "status": "OPEN", "start_time": "2024-06-03T07:00:00Z", "booked": 2},
        {"id": "s2", "status": "OPEN", "start_time": "2024-07-03T07:00:00Z", "booked": 1},
    ]

    payload = client.get("/v1/admin/broadcasts/calendar").json()

    assert (payload["year"], payload["month"]) == (2024, 6)
    assert len(payload["cells"]) == 30
    assert payload["cells"][2]["booked_count"] == 2
    assert list(payload["slots_by_date"]) == ["2024-06-03"]


def test_affected_bookings_endpoint(client, fake_backend):
    fake_backend.tables["bookings"] = [{"id": "b1", "slot_id": "s1", "status": "CONFIRMED"}]

    payload = client.get("/v1/admin/broadcasts/affected", params=[("slot_ids", "s1")]).json()

    assert payload["slot_ids"] == ["s1"]
    assert [booking["id"] for booking in payload["bookings"]] == ["b1"]


def test_bookings_list_shifts_the_window(client, fake_backend):
    response = client.get("/v1/admin/bookings", params={"start": "2024-06-08", "end": "2024-06-14", "shift": -7})

    payload = response.json()
    assert payload["range"]["start"].startswith("2024-06-01T00:00:00")
    assert payload["range"]["end"].startswith("2024-06-07T23:59:59")
    lower, upper = fake_backend.calls("GET", "/rest/v1/bookings")[0].param("slots.start_time")
    assert lower.startswith("gte.2024-05-31T22:00:00")


def test_rebook_options_exclude_current_slot_and_total_open_seats(client, fake_backend):
    fake_backend.tables["bookings"] = [
        {"id": "b1", "slot_id": "s1", "slots": {"id": "s1", "tour_id": "t1", "start_time": "2024-06-01T07:00:00Z"}},
    ]
    fake_backend.tables["slots"] = [
        {"id": "s1", "tour_id": "t1", "status": "OPEN", "start_time": "2024-06-02T07:00:00Z", "capacity_total": 8, "booked": 2},
        {"id": "s2", "tour_id": "t1", "status": "OPEN", "start_time": "2024-06-02T09:00:00Z", "capacity_total": 6, "booked": 1},
        {"id": "s3", "tour_id": "t1", "status": "OPEN", "start_time": "2024-06-02T11:00:00Z", "capacity_total": 4, "booked": 4},
        {"id": "s4", "tour_id": "t2", "status": "OPEN", "start_time": "2024-06-02T11:00:00Z", "capacity_total": 9, "booked": 0},
    ]

    payload = client.get("/v1/admin/bookings/b1/rebook-options", params={"day": "2024-06-02"}).json()

    assert [slot["id"] for slot in payload["slots"]] == ["s2"]
    assert payload["open_seats"] == 5
