"""
Directory API Endpoints.

Register customers and drivers and manage the proxy number pool.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from rideproxy.app.db.session import get_db
from rideproxy.app.models.enums import PartyRole
from rideproxy.app.schemas.directory import (
    PartyCreate, PartyResponse, PartyListResponse,
    ProxyNumberCreate, ProxyNumberResponse, ProxyPoolResponse
)
from rideproxy.app.services import directory
from rideproxy.app.services.audit import log_event, AuditAction

router = APIRouter(tags=["Directory"])


async def _register_party(db: AsyncSession, data: PartyCreate, role: PartyRole) -> PartyResponse:
    party = await directory.create_party(db, name=data.name, number=data.number, role=role)
    await db.commit()
    await db.refresh(party)
    
    await log_event(
        db=db,
        action=AuditAction.PARTY_CREATED,
        actor_id=party.id,
        metadata={"role": role.value}
    )
    return PartyResponse.model_validate(party)


@router.get("/customers", response_model=PartyListResponse)
async def list_customers(db: AsyncSession = Depends(get_db)):
    """List all customers."""
    customers = await directory.list_customers(db)
    return PartyListResponse(
        parties=[PartyResponse.model_validate(c) for c in customers],
        total=len(customers)
    )


@router.post("/customers", response_model=PartyResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(data: PartyCreate, db: AsyncSession = Depends(get_db)):
    """Register a customer. Phone numbers are unique among customers."""
    return await _register_party(db, data, PartyRole.CUSTOMER)


@router.get("/drivers", response_model=PartyListResponse)
async def list_drivers(db: AsyncSession = Depends(get_db)):
    """List all drivers."""
    drivers = await directory.list_drivers(db)
    return PartyListResponse(
        parties=[PartyResponse.model_validate(d) for d in drivers],
        total=len(drivers)
    )


@router.post("/drivers", response_model=PartyResponse, status_code=status.HTTP_201_CREATED)
async def create_driver(data: PartyCreate, db: AsyncSession = Depends(get_db)):
    """Register a driver. Phone numbers are unique among drivers."""
    return await _register_party(db, data, PartyRole.DRIVER)


@router.get("/proxy-numbers", response_model=ProxyPoolResponse)
async def list_proxy_numbers(db: AsyncSession = Depends(get_db)):
    """List the proxy number pool."""
    pool = await directory.list_proxy_pool(db)
    return ProxyPoolResponse(
        proxy_numbers=[ProxyNumberResponse.model_validate(p) for p in pool],
        total=len(pool)
    )


@router.post("/proxy-numbers", response_model=ProxyNumberResponse, status_code=status.HTTP_201_CREATED)
async def add_proxy_number(data: ProxyNumberCreate, db: AsyncSession = Depends(get_db)):
    """
    Add a number to the proxy pool.
    
    Expanding the pool is how an exhausted allocation is resolved.
    """
    proxy = await directory.create_proxy_number(db, data.number)
    await db.commit()
    await db.refresh(proxy)
    
    await log_event(
        db=db,
        action=AuditAction.PROXY_NUMBER_ADDED,
        metadata={"proxy_number_id": proxy.id, "number": proxy.number}
    )
    return ProxyNumberResponse.model_validate(proxy)
