"""
Directory service.

Data access for parties, the proxy pool and rides, and conversion of rows
into the immutable snapshots the allocation and routing functions read.
"""

from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from rideproxy.app.core.exceptions import DuplicateResourceError
from rideproxy.app.domain.proxy.snapshots import PairingSnapshot, PartySnapshot, ProxyNumberSnapshot
from rideproxy.app.models.enums import PartyRole
from rideproxy.app.models.party import Party
from rideproxy.app.models.proxy_binding import ProxyBinding
from rideproxy.app.models.proxy_number import ProxyNumber
from rideproxy.app.models.ride import Ride


def party_snapshot(party: Party) -> PartySnapshot:
    return PartySnapshot(id=party.id, name=party.name, number=party.number)


def proxy_snapshot(proxy: ProxyNumber) -> ProxyNumberSnapshot:
    return ProxyNumberSnapshot(id=proxy.id, number=proxy.number)


def pairing_snapshot(ride: Ride) -> PairingSnapshot:
    """Snapshot a ride whose customer, driver and proxy number are loaded."""
    return PairingSnapshot(
        id=ride.id,
        customer=party_snapshot(ride.customer),
        driver=party_snapshot(ride.driver),
        proxy_number=proxy_snapshot(ride.proxy_number),
        metadata={
            "start": ride.start,
            "destination": ride.destination,
            "pickup_time": ride.pickup_time,
        }
    )


async def list_parties(db: AsyncSession, role: PartyRole) -> List[Party]:
    result = await db.execute(
        select(Party).where(Party.role == role).order_by(Party.id)
    )
    return list(result.scalars().all())


async def list_customers(db: AsyncSession) -> List[Party]:
    return await list_parties(db, PartyRole.CUSTOMER)


async def list_drivers(db: AsyncSession) -> List[Party]:
    return await list_parties(db, PartyRole.DRIVER)


async def get_party(db: AsyncSession, party_id: int) -> Optional[Party]:
    result = await db.execute(select(Party).where(Party.id == party_id))
    return result.scalar_one_or_none()


async def create_party(db: AsyncSession, name: str, number: str, role: PartyRole) -> Party:
    """
    Register a customer or driver.
    
    Raises:
        DuplicateResourceError: If the number is already registered for the role
    """
    existing = await db.execute(
        select(Party).where(Party.role == role, Party.number == number)
    )
    if existing.scalar_one_or_none():
        raise DuplicateResourceError(role.value.capitalize(), number)
    
    party = Party(name=name, number=number, role=role)
    db.add(party)
    await db.flush()
    return party


async def list_proxy_pool(db: AsyncSession) -> List[ProxyNumber]:
    result = await db.execute(select(ProxyNumber).order_by(ProxyNumber.id))
    return list(result.scalars().all())


async def create_proxy_number(db: AsyncSession, number: str) -> ProxyNumber:
    """
    Add a number to the proxy pool.
    
    Raises:
        DuplicateResourceError: If the number is already in the pool
    """
    existing = await db.execute(select(ProxyNumber).where(ProxyNumber.number == number))
    if existing.scalar_one_or_none():
        raise DuplicateResourceError("Proxy number", number)
    
    proxy = ProxyNumber(number=number)
    db.add(proxy)
    await db.flush()
    return proxy


async def list_rides(db: AsyncSession) -> List[Ride]:
    """All rides with their parties and proxy number eagerly loaded."""
    result = await db.execute(
        select(Ride)
        .options(
            selectinload(Ride.customer),
            selectinload(Ride.driver),
            selectinload(Ride.proxy_number),
        )
        .order_by(Ride.id)
    )
    return list(result.scalars().all())


async def get_ride(db: AsyncSession, ride_id: int) -> Optional[Ride]:
    result = await db.execute(
        select(Ride)
        .options(
            selectinload(Ride.customer),
            selectinload(Ride.driver),
            selectinload(Ride.proxy_number),
        )
        .where(Ride.id == ride_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def load_pool(db: AsyncSession) -> List[ProxyNumberSnapshot]:
    return [proxy_snapshot(proxy) for proxy in await list_proxy_pool(db)]


async def load_pairings(db: AsyncSession) -> List[PairingSnapshot]:
    return [pairing_snapshot(ride) for ride in await list_rides(db)]


async def create_ride(
    db: AsyncSession,
    customer: PartySnapshot,
    driver: PartySnapshot,
    proxy_number_id: int,
    metadata: Optional[Dict[str, Any]] = None
) -> Ride:
    """
    Write a ride and its two proxy bindings.
    
    Does not commit. A binding that already exists, for the same party or
    for the same phone number under another party, makes the flush raise
    IntegrityError.
    """
    metadata = metadata or {}
    ride = Ride(
        customer_id=customer.id,
        driver_id=driver.id,
        proxy_number_id=proxy_number_id,
        start=metadata.get("start"),
        destination=metadata.get("destination"),
        pickup_time=metadata.get("pickup_time"),
    )
    db.add(ride)
    await db.flush()
    
    db.add_all([
        ProxyBinding(ride_id=ride.id, party_id=party.id, number=party.number, proxy_number_id=proxy_number_id)
        for party in (customer, driver)
    ])
    await db.flush()
    return ride
