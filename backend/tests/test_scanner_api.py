"""
Integration tests for the scanner and forwarder dashboard APIs.
"""

import pytest

from backend.app.services.status_history import get_history


# Scanner

@pytest.mark.asyncio
async def test_scan_with_status(client, auth_headers, worker, order):
    response = await client.post(
        "/v1/scans",
        headers=auth_headers(worker),
        json={
            "raw_value": f"{order.id}|{order.tracking_number}|DHL",
            "location": "Gate A",
            "device_info": "Zebra TC52",
            "status": "arrived_at_warehouse",
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status_changed"] is True
    assert data["order"]["status"] == "arrived_at_warehouse"
    assert data["history_entry"]["event_type"] == "STATUS_CHANGE"
    assert data["history_entry"]["scan_data"]["location"] == "Gate A"


@pytest.mark.asyncio
async def test_check_in_scan(client, auth_headers, worker, order):
    response = await client.post(
        "/v1/scans",
        headers=auth_headers(worker),
        json={"raw_value": order.tracking_number, "location": "Shelf 4"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status_changed"] is False
    assert data["order"]["status"] == "incoming"
    assert data["history_entry"]["event_type"] == "SCAN"


@pytest.mark.asyncio
async def test_unknown_scan_returns_404_and_is_logged(client, auth_headers, worker):
    response = await client.post(
        "/v1/scans",
        headers=auth_headers(worker),
        json={"raw_value": "UNKNOWN-BARCODE", "location": "Gate A", "status": "arrived_at_warehouse"},
    )

    assert response.status_code == 404
    body = response.json()
    assert body["error_code"] == "ERR_SCAN_001"
    assert body["details"]["barcode_value"] == "UNKNOWN-BARCODE"
    assert body["details"]["history_entry_id"] is not None


@pytest.mark.asyncio
async def test_out_of_scope_scan_returns_403(client, auth_headers, outside_worker, worker, order):
    response = await client.post(
        "/v1/scans",
        headers=auth_headers(outside_worker),
        json={"raw_value": order.tracking_number, "status": "arrived_at_warehouse"},
    )

    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_001"

    history = await client.get(f"/v1/orders/{order.id}/history", headers=auth_headers(worker))
    assert history.json()["entries"] == []


@pytest.mark.asyncio
async def test_illegal_scan_transition(client, auth_headers, worker, order):
    response = await client.post(
        "/v1/scans",
        headers=auth_headers(worker),
        json={"raw_value": order.tracking_number, "status": "in_transit"},
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_TRANSITION_001"


@pytest.mark.asyncio
async def test_system_actor_cannot_scan(client, auth_headers, system_actor, order):
    response = await client.post(
        "/v1/scans", headers=auth_headers(system_actor), json={"raw_value": order.tracking_number}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_scan_value_too_long(client, auth_headers, worker):
    response = await client.post(
        "/v1/scans", headers=auth_headers(worker), json={"raw_value": "X" * 300}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_blank_scan_value_is_a_validation_error(client, auth_headers, worker, db_session):
    """Whitespace is stripped before validation, so a blank scan never reaches the scanner."""
    response = await client.post(
        "/v1/scans", headers=auth_headers(worker), json={"raw_value": "   "}
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"
    assert await get_history(db_session, "   ") == []
    assert await get_history(db_session, "") == []


# Forwarder dashboard

@pytest.fixture
async def busy_day(client, auth_headers, worker, forwarder, order_factory):
    """Two orders moved by a worker and the forwarder."""
    first = await order_factory()
    second = await order_factory()

    moves = [
        (first, "arrived_at_warehouse", worker),
        (second, "arrived_at_warehouse", worker),
        (first, "packed", worker),
        (second, "delivered", forwarder),
    ]
    for order, status_value, actor in moves:
        response = await client.patch(
            f"/v1/orders/{order.id}/status", headers=auth_headers(actor), json={"status": status_value}
        )
        assert response.status_code == 200

    return first, second


@pytest.mark.asyncio
async def test_forwarder_status_feed(client, auth_headers, forwarder, worker, busy_day):
    first, second = busy_day

    response = await client.get("/v1/forwarder/status-updates", headers=auth_headers(forwarder))

    assert response.status_code == 200
    feed = response.json()
    assert len(feed) == 4
    assert (feed[0]["order_id"], feed[0]["new_status"]) == (second.id, "delivered")

    response = await client.get(
        "/v1/forwarder/status-updates",
        headers=auth_headers(forwarder),
        params={"staff_id": worker.id, "limit": 2},
    )
    feed = response.json()
    assert len(feed) == 2
    assert all(entry["changed_by"] == worker.id for entry in feed)


@pytest.mark.asyncio
async def test_other_forwarder_sees_empty_feed(client, auth_headers, other_forwarder, busy_day):
    response = await client.get("/v1/forwarder/status-updates", headers=auth_headers(other_forwarder))

    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_forwarder_status_stats(client, auth_headers, forwarder, worker, busy_day):
    response = await client.get("/v1/forwarder/status-updates/stats", headers=auth_headers(forwarder))

    assert response.status_code == 200
    stats = response.json()
    assert stats["total_updates"] == 4
    assert stats["staff_updates"] == 3
    assert stats["forwarder_updates"] == 1
    assert stats["staff_breakdown"] == [{"staff_id": worker.id, "count": 3}]


@pytest.mark.asyncio
async def test_forwarder_staff_activity(client, auth_headers, forwarder, worker, busy_day):
    response = await client.get("/v1/forwarder/staff-activity", headers=auth_headers(forwarder))

    assert response.status_code == 200
    activity = response.json()
    assert len(activity) == 3
    assert all(item["staff_id"] == worker.id for item in activity)
    assert all(item["activity_type"] == "status_update" for item in activity)


@pytest.mark.asyncio
async def test_staff_cannot_read_forwarder_dashboard(client, auth_headers, manager):
    for path in ["/v1/forwarder/status-updates", "/v1/forwarder/status-updates/stats", "/v1/forwarder/staff-activity"]:
        response = await client.get(path, headers=auth_headers(manager))
        assert response.status_code == 403
