"""
Integration tests for ride creation and the directory endpoints.

Covers proxy allocation through the API, pool exhaustion and rotation,
and the SMS introductions sent from the proxy number.
"""

import pytest
from sqlalchemy import select

from rideproxy.app.models.audit_log import AuditLog
from rideproxy.app.models.dlq import DeadLetterQueue
from rideproxy.app.models.ride import Ride
from rideproxy.app.services.audit import AuditAction

# Note: Client and DB setup are in conftest.py


async def create_ride(client, customer_id, driver_id, **extra):
    return await client.post("/v1/rides", json={
        "customer_id": customer_id,
        "driver_id": driver_id,
        "start": "Central Station",
        "destination": "Airport",
        "pickup_time": "2026-10-20 08:30",
        **extra
    })


@pytest.mark.asyncio
async def test_create_ride_success(client, example_directory, messenger):
    """A ride gets the only proxy number and both parties are introduced."""
    ids = example_directory
    
    response = await create_ride(client, ids["alice"], ids["carol"])
    
    assert response.status_code == 201
    data = response.json()
    assert data["ride"]["proxy_number"] == "31900000001"
    assert data["ride"]["customer"]["number"] == "31600000001"
    assert data["ride"]["driver"]["name"] == "carol"
    assert data["ride"]["pickup_time"] == "2026-10-20 08:30"
    assert data["notified"] == ["31600000001", "31600000003"]
    assert data["failed_notifications"] == []
    
    customer_sms, driver_sms = messenger.sent
    assert customer_sms["originator"] == "31900000001"
    assert customer_sms["body"] == (
        "carol will pick you up at 2026-10-20 08:30. Reply to this message to contact the driver."
    )
    assert driver_sms["recipient"] == "31600000003"
    assert driver_sms["body"].startswith("You will pick up alice at 2026-10-20 08:30.")


@pytest.mark.asyncio
async def test_pool_exhaustion_returns_conflict(client, example_directory, db_session):
    """Customer already bound to the only proxy: no ride is written."""
    ids = example_directory
    assert (await create_ride(client, ids["alice"], ids["carol"])).status_code == 201
    
    response = await create_ride(client, ids["alice"], ids["dave"])
    
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_PROXY_001"
    
    rides = (await db_session.execute(select(Ride))).scalars().all()
    assert len(rides) == 1
    
    audit = await db_session.execute(
        select(AuditLog).where(AuditLog.action == AuditAction.PROXY_ALLOCATION_FAILED)
    )
    assert audit.scalar_one_or_none() is not None


@pytest.mark.asyncio
async def test_rotation_after_pool_expansion(client, example_directory):
    """A second proxy unblocks the conflicting pairing; disjoint parties reuse V1."""
    ids = example_directory
    assert (await create_ride(client, ids["alice"], ids["carol"])).status_code == 201
    assert (await create_ride(client, ids["alice"], ids["dave"])).status_code == 409
    
    response = await client.post("/v1/proxy-numbers", json={"number": "31900000002"})
    assert response.status_code == 201
    
    response = await create_ride(client, ids["alice"], ids["dave"])
    assert response.status_code == 201
    assert response.json()["ride"]["proxy_number"] == "31900000002"
    
    # carol is bound to V1 only, so bob and carol get V2
    response = await create_ride(client, ids["bob"], ids["carol"])
    assert response.status_code == 201
    assert response.json()["ride"]["proxy_number"] == "31900000002"

    # neither bob nor a fresh driver is bound to V1, so V1 is reused
    response = await client.post("/v1/drivers", json={"name": "erin", "number": "31600000005"})
    erin_id = response.json()["id"]
    response = await create_ride(client, ids["bob"], erin_id)
    assert response.status_code == 201
    assert response.json()["ride"]["proxy_number"] == "31900000001"

    # bob is now bound to both proxies
    response = await create_ride(client, ids["bob"], ids["dave"])
    assert response.status_code == 409

    response = await client.get("/v1/rides")
    assert response.json()["total"] == 4


@pytest.mark.asyncio
async def test_unknown_customer_returns_not_found(client, example_directory):
    response = await create_ride(client, 9999, example_directory["carol"])
    
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_driver_id_used_as_customer_returns_not_found(client, example_directory):
    ids = example_directory
    
    response = await create_ride(client, ids["carol"], ids["dave"])
    
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_shared_phone_number_is_rejected(client, example_directory):
    response = await client.post("/v1/drivers", json={"name": "alice-driving", "number": "31600000001"})
    assert response.status_code == 201
    
    response = await create_ride(client, example_directory["alice"], response.json()["id"])
    
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_BAD_REQUEST_001"


@pytest.mark.asyncio
async def test_number_in_both_roles_never_shares_a_proxy(client, example_directory, db_session):
    """alice also drives; her number must not be bound to V1 through a second ride."""
    ids = example_directory
    response = await client.post("/v1/drivers", json={"name": "alice-driving", "number": "31600000001"})
    alice_driving = response.json()["id"]
    assert (await create_ride(client, ids["alice"], ids["carol"])).status_code == 201
    
    response = await create_ride(client, ids["bob"], alice_driving)
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_PROXY_001"
    
    await client.post("/v1/proxy-numbers", json={"number": "31900000002"})
    response = await create_ride(client, ids["bob"], alice_driving)
    assert response.status_code == 201
    assert response.json()["ride"]["proxy_number"] == "31900000002"
    
    # Each proxy routes her calls to the counterparty of the ride on it
    on_v1 = await client.get("/v1/webhooks/voice", params={"source": "31600000001", "destination": "31900000001"})
    on_v2 = await client.get("/v1/webhooks/voice", params={"source": "31600000001", "destination": "31900000002"})
    assert "destination='31600000003'" in on_v1.text
    assert "destination='31600000002'" in on_v2.text
    
    faults = await db_session.execute(
        select(AuditLog).where(AuditLog.action == AuditAction.ROUTING_CONSISTENCY_FAULT)
    )
    assert faults.scalars().all() == []


@pytest.mark.asyncio
async def test_notification_failure_keeps_ride(client, example_directory, messenger, db_session):
    """A rejected SMS lands in the DLQ; the ride stays committed."""
    messenger.reject.add("31600000003")
    
    response = await create_ride(client, example_directory["alice"], example_directory["carol"])
    
    assert response.status_code == 201
    assert response.json()["failed_notifications"] == ["31600000003"]
    
    dlq = (await db_session.execute(select(DeadLetterQueue))).scalars().all()
    assert len(dlq) == 1
    assert dlq[0].task_name == "ride_notification"
    assert dlq[0].recipient == "31600000003"
    assert dlq[0].payload["originator"] == "31900000001"
    assert dlq[0].provider_errors == [{"code": 9, "description": "no balance"}]


@pytest.mark.asyncio
async def test_duplicate_numbers_conflict(client, example_directory):
    response = await client.post("/v1/customers", json={"name": "alice again", "number": "31600000001"})
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_CONFLICT_001"
    
    response = await client.post("/v1/proxy-numbers", json={"number": "31900000001"})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_directory_listings(client, example_directory):
    customers = (await client.get("/v1/customers")).json()
    drivers = (await client.get("/v1/drivers")).json()
    pool = (await client.get("/v1/proxy-numbers")).json()
    
    assert [c["name"] for c in customers["parties"]] == ["alice", "bob"]
    assert {d["role"] for d in drivers["parties"]} == {"DRIVER"}
    assert pool["total"] == 1


@pytest.mark.asyncio
async def test_invalid_phone_number_rejected(client):
    response = await client.post("/v1/customers", json={"name": "x", "number": "not-a-number"})
    
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_ride_events_trail(client, example_directory):
    ids = example_directory
    ride_id = (await create_ride(client, ids["alice"], ids["carol"])).json()["ride"]["id"]
    
    await client.post(
        "/v1/webhooks/sms",
        data={"originator": "31600000001", "receiver": "31900000001", "payload": "hi"}
    )
    
    response = await client.get(f"/v1/rides/{ride_id}/events")
    
    assert response.status_code == 200
    actions = [event["action"] for event in response.json()]
    assert set(actions) == {"RIDE_CREATED", "MESSAGE_RELAYED"}
    
    response = await client.get("/v1/rides/9999/events")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_leading_plus_rejected(client):
    """Webhooks report numbers without "+", so stored numbers must match that form."""
    response = await client.post("/v1/drivers", json={"name": "x", "number": "+31600000009"})
    assert response.status_code == 422
    
    response = await client.post("/v1/proxy-numbers", json={"number": "+31900000009"})
    assert response.status_code == 422
