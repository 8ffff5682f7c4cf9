"""
Database seeding script for demo data.

Creates two customers, two drivers and two proxy numbers so rides can be
created right away. Safe to run repeatedly.

Usage:
    python -m rideproxy.seed_example_data
"""

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rideproxy.app.models.enums import PartyRole
from rideproxy.app.models.party import Party
from rideproxy.app.models.proxy_number import ProxyNumber

logger = logging.getLogger("rideproxy.seed")

EXAMPLE_CUSTOMERS = [
    ("Caitlyn Carless", "319700000"),
    ("Danny Bikes", "319700001"),
]
EXAMPLE_DRIVERS = [
    ("David Driver", "319700002"),
    ("Eileen LaRue", "319700003"),
]
EXAMPLE_PROXY_NUMBERS = ["319700004", "319700005"]


async def _upsert_party(db: AsyncSession, name: str, number: str, role: PartyRole) -> bool:
    result = await db.execute(
        select(Party).where(Party.role == role, Party.number == number)
    )
    party = result.scalar_one_or_none()
    if party:
        party.name = name
        return False
    db.add(Party(name=name, number=number, role=role))
    return True


async def seed_example_data(db: AsyncSession) -> int:
    """
    Insert the demo parties and proxy numbers.
    
    Existing parties keep their id and get their name refreshed; existing
    proxy numbers are left alone.
    
    Returns:
        Number of rows created
    """
    created = 0
    for name, number in EXAMPLE_CUSTOMERS:
        created += await _upsert_party(db, name, number, PartyRole.CUSTOMER)
    for name, number in EXAMPLE_DRIVERS:
        created += await _upsert_party(db, name, number, PartyRole.DRIVER)
    
    for number in EXAMPLE_PROXY_NUMBERS:
        result = await db.execute(select(ProxyNumber).where(ProxyNumber.number == number))
        if result.scalar_one_or_none() is None:
            db.add(ProxyNumber(number=number))
            created += 1
    
    await db.commit()
    logger.info("Seeded %d example rows", created)
    return created


async def main():
    from rideproxy.app.db.session import AsyncSessionLocal, Base, engine
    from rideproxy.app.main import app  # noqa: F401  registers every model
    
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with AsyncSessionLocal() as db:
        created = await seed_example_data(db)
    print(f"Seeding complete: {created} rows created")


if __name__ == "__main__":
    asyncio.run(main())
