"""
Ride and relay orchestration.

Wires the pure allocation and routing functions to the database, the
allocation lock and the messaging provider:

- create_ride: allocate a proxy number under the lock, persist the ride,
  then introduce both parties by SMS from the proxy number.
- relay_message: forward an inbound SMS to the other party of its ride.
- route_call: answer an inbound call with a transfer or failure call flow.
"""

import enum
import logging
import random
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rideproxy.app.core.config import settings
from rideproxy.app.core.exceptions import (
    AllocationConflictError,
    InvalidPairingError,
    NoAvailableProxyError,
    ResourceNotFoundError,
    SendFailedError,
    UnknownProxyError,
    UnrecognizedSenderError,
)
from rideproxy.app.domain.proxy.assignment import SelectionPolicy, allocate_proxy_number
from rideproxy.app.domain.proxy.routing import RouteResolution, resolve_route
from rideproxy.app.models.enums import PartyRole
from rideproxy.app.models.party import Party
from rideproxy.app.models.ride import Ride
from rideproxy.app.services import directory
from rideproxy.app.services.allocation_lock import allocation_lock
from rideproxy.app.services.audit import AuditAction, log_event
from rideproxy.app.services.call_flow import failure_call_flow, transfer_call_flow
from rideproxy.app.services.dead_letter import capture_failed_task

logger = logging.getLogger("rideproxy.relay")


class RelayOutcome(str, enum.Enum):
    """Result of handling one inbound SMS or call."""
    FORWARDED = "FORWARDED"
    UNKNOWN_PROXY = "UNKNOWN_PROXY"
    UNRECOGNIZED_SENDER = "UNRECOGNIZED_SENDER"
    SEND_FAILED = "SEND_FAILED"


@dataclass
class RideCreationResult:
    ride: Ride
    customer: Party
    driver: Party
    proxy_number: str
    notified: List[str] = field(default_factory=list)
    failed_notifications: List[str] = field(default_factory=list)


@dataclass
class CallRouting:
    xml: str
    outcome: RelayOutcome
    forward_to: Optional[str] = None


async def _require_party(db: AsyncSession, party_id: int, role: PartyRole) -> Party:
    party = await directory.get_party(db, party_id)
    if party is None or party.role != role:
        raise ResourceNotFoundError(role.value.capitalize(), party_id)
    return party


async def create_ride(
    db: AsyncSession,
    redis,
    messenger,
    customer_id: int,
    driver_id: int,
    start: Optional[str] = None,
    destination: Optional[str] = None,
    pickup_time: Optional[str] = None,
    policy: Optional[SelectionPolicy] = None,
    rng: Optional[random.Random] = None
) -> RideCreationResult:
    """
    Create a ride with a conflict-free proxy number and notify both parties.

    Raises:
        ResourceNotFoundError: Unknown customer or driver
        InvalidPairingError: Customer and driver share a phone number
        NoAvailableProxyError: Every proxy number conflicts with this pairing
        AllocationConflictError: A concurrent writer claimed the binding first
        AllocationBusyError: The allocation lock could not be acquired
    """
    customer = await _require_party(db, customer_id, PartyRole.CUSTOMER)
    driver = await _require_party(db, driver_id, PartyRole.DRIVER)

    if customer.number == driver.number:
        raise InvalidPairingError(
            "Customer and driver cannot share a phone number",
            details={"customer_id": customer_id, "driver_id": driver_id}
        )

    policy = policy or SelectionPolicy(settings.proxy_selection_policy)
    customer_snapshot = directory.party_snapshot(customer)
    driver_snapshot = directory.party_snapshot(driver)

    try:
        async with allocation_lock(redis):
            pool = await directory.load_pool(db)
            history = await directory.load_pairings(db)
            proxy = allocate_proxy_number(
                pool, history, customer_snapshot.id, driver_snapshot.id,
                policy=policy, rng=rng,
                customer_number=customer_snapshot.number, driver_number=driver_snapshot.number
            )

            try:
                ride = await directory.create_ride(
                    db,
                    customer=customer_snapshot,
                    driver=driver_snapshot,
                    proxy_number_id=proxy.id,
                    metadata={"start": start, "destination": destination, "pickup_time": pickup_time}
                )
                await db.commit()
            except IntegrityError:
                await db.rollback()
                logger.error(
                    "Binding conflict committing ride for customer %s, driver %s on proxy %s",
                    customer_snapshot.id, driver_snapshot.id, proxy.number
                )
                raise AllocationConflictError(proxy.id)
    except NoAvailableProxyError as exc:
        await log_event(
            db=db,
            action=AuditAction.PROXY_ALLOCATION_FAILED,
            actor_id=customer_snapshot.id,
            metadata=exc.details
        )
        raise

    logger.info(
        "Created ride %s for customer %s and driver %s on proxy %s",
        ride.id, customer.id, driver.id, proxy.number
    )
    await log_event(
        db=db,
        action=AuditAction.RIDE_CREATED,
        actor_id=customer.id,
        ride_id=ride.id,
        metadata={"driver_id": driver.id, "proxy_number": proxy.number}
    )

    result = RideCreationResult(ride=ride, customer=customer, driver=driver, proxy_number=proxy.number)
    notifications = [
        (
            customer.number,
            f"{driver.name} will pick you up at {pickup_time}. "
            "Reply to this message to contact the driver."
        ),
        (
            driver.number,
            f"You will pick up {customer.name} at {pickup_time}. "
            "Reply to this message to contact the customer."
        ),
    ]
    for recipient, body in notifications:
        if await _send(db, messenger, "ride_notification", proxy.number, recipient, body):
            result.notified.append(recipient)
        else:
            result.failed_notifications.append(recipient)

    return result


async def _send(db: AsyncSession, messenger, task_name: str, originator: str, recipient: str, body: str) -> bool:
    try:
        await messenger.send_sms(originator, recipient, body)
    except SendFailedError as exc:
        logger.error("Could not send sms notification to %s: %s", recipient, exc.message)
        await capture_failed_task(
            db,
            task_name=task_name,
            error=exc,
            payload={"originator": originator, "recipient": recipient, "body": body}
        )
        return False
    return True


async def _resolve_inbound(db: AsyncSession, proxy_number: str, sender_number: str) -> RouteResolution:
    """Resolve against a fresh snapshot and audit both failure kinds distinctly."""
    history = await directory.load_pairings(db)
    try:
        resolution = resolve_route(history, proxy_number, sender_number)
    except UnknownProxyError:
        logger.warning("Unknown proxy number: %s", proxy_number)
        await log_event(
            db=db,
            action=AuditAction.ROUTING_UNKNOWN_PROXY,
            actor_number=sender_number,
            metadata={"proxy_number": proxy_number}
        )
        raise
    except UnrecognizedSenderError as exc:
        logger.warning(
            "Could not find ride for customer/driver %s that uses proxy %s",
            sender_number, proxy_number
        )
        await log_event(
            db=db,
            action=AuditAction.ROUTING_UNRECOGNIZED_SENDER,
            actor_number=sender_number,
            metadata=exc.details
        )
        raise

    if resolution.is_ambiguous:
        await log_event(
            db=db,
            action=AuditAction.ROUTING_CONSISTENCY_FAULT,
            actor_number=sender_number,
            ride_id=resolution.pairing.id,
            metadata={
                "proxy_number": proxy_number,
                "ambiguous_ride_ids": list(resolution.ambiguous_pairing_ids),
            }
        )
    return resolution


async def relay_message(
    db: AsyncSession,
    messenger,
    originator: str,
    receiver: str,
    payload: str
) -> RelayOutcome:
    """
    Forward an inbound SMS to the other party of its ride.

    Routing failures are dropped after logging; the provider expects no
    meaningful reply to the webhook.
    """
    try:
        resolution = await _resolve_inbound(db, receiver, originator)
    except UnknownProxyError:
        return RelayOutcome.UNKNOWN_PROXY
    except UnrecognizedSenderError:
        return RelayOutcome.UNRECOGNIZED_SENDER

    sent = await _send(db, messenger, "sms_relay", receiver, resolution.counterparty_number, payload)
    if not sent:
        return RelayOutcome.SEND_FAILED

    await log_event(
        db=db,
        action=AuditAction.MESSAGE_RELAYED,
        actor_id=(
            resolution.pairing.customer.id
            if resolution.sender_role == PartyRole.CUSTOMER
            else resolution.pairing.driver.id
        ),
        actor_number=originator,
        ride_id=resolution.pairing.id,
        metadata={"sender_role": resolution.sender_role.value}
    )
    return RelayOutcome.FORWARDED


async def route_call(db: AsyncSession, source: str, destination: str) -> CallRouting:
    """
    Build the call flow for an inbound call on a proxy number.

    Args:
        source: Number of the caller
        destination: Proxy number that was dialed
    """
    try:
        resolution = await _resolve_inbound(db, destination, source)
    except UnknownProxyError:
        return CallRouting(xml=failure_call_flow(), outcome=RelayOutcome.UNKNOWN_PROXY)
    except UnrecognizedSenderError:
        return CallRouting(xml=failure_call_flow(), outcome=RelayOutcome.UNRECOGNIZED_SENDER)

    logger.info("Transferring call on %s to %s", destination, resolution.counterparty_number)
    await log_event(
        db=db,
        action=AuditAction.CALL_TRANSFERRED,
        actor_number=source,
        ride_id=resolution.pairing.id,
        metadata={"sender_role": resolution.sender_role.value}
    )
    return CallRouting(
        xml=transfer_call_flow(resolution.counterparty_number),
        outcome=RelayOutcome.FORWARDED,
        forward_to=resolution.counterparty_number
    )
