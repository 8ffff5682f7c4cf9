"""
Ride API Endpoints.

Creating a ride allocates a proxy number and introduces both parties by SMS.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Path, Query, status
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession

from rideproxy.app.core.redis_client import get_redis
from rideproxy.app.db.session import get_db
from rideproxy.app.domain.proxy.snapshots import PairingSnapshot
from rideproxy.app.models.ride import Ride
from rideproxy.app.schemas.ride import (
    RideCreate, RideCreateResponse, RideEventResponse, RideListResponse, RidePartyResponse, RideResponse
)
from rideproxy.app.services import directory, relay
from rideproxy.app.core.exceptions import ResourceNotFoundError
from rideproxy.app.services.audit import get_audit_trail
from rideproxy.app.services.messaging import get_messenger

router = APIRouter(prefix="/rides", tags=["Rides"])


def _ride_response(ride: Ride, pairing: PairingSnapshot) -> RideResponse:
    return RideResponse(
        id=ride.id,
        customer=RidePartyResponse(**asdict(pairing.customer)),
        driver=RidePartyResponse(**asdict(pairing.driver)),
        proxy_number=pairing.proxy_number.number,
        start=ride.start,
        destination=ride.destination,
        pickup_time=ride.pickup_time,
        created_at=ride.created_at
    )


@router.get("", response_model=RideListResponse)
async def list_rides(db: AsyncSession = Depends(get_db)):
    """List every ride with its parties and proxy number."""
    rides = await directory.list_rides(db)
    return RideListResponse(
        rides=[_ride_response(ride, directory.pairing_snapshot(ride)) for ride in rides],
        total=len(rides)
    )


@router.post("", response_model=RideCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_ride(
    data: RideCreate,
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
    messenger=Depends(get_messenger)
):
    """
    Create a ride.
    
    Validates:
    - Customer and driver exist
    - Customer and driver do not share a phone number
    - A proxy number is free for both parties (409 ERR_PROXY_001 otherwise)
    """
    result = await relay.create_ride(
        db,
        redis,
        messenger,
        customer_id=data.customer_id,
        driver_id=data.driver_id,
        start=data.start,
        destination=data.destination,
        pickup_time=data.pickup_time
    )
    ride = await directory.get_ride(db, result.ride.id)
    return RideCreateResponse(
        ride=_ride_response(ride, directory.pairing_snapshot(ride)),
        notified=result.notified,
        failed_notifications=result.failed_notifications
    )


@router.get("/{ride_id}/events", response_model=List[RideEventResponse])
async def list_ride_events(
    ride_id: int = Path(..., description="Ride ID"),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db)
):
    """Audit trail of a ride: creation, relayed messages and transferred calls."""
    if await directory.get_ride(db, ride_id) is None:
        raise ResourceNotFoundError("Ride", ride_id)
    
    events = await get_audit_trail(db, ride_id=ride_id, limit=limit)
    return [RideEventResponse.model_validate(event) for event in events]
