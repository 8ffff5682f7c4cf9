"""
Ride schemas.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class RideCreate(BaseModel):
    """Schema for creating a ride."""
    customer_id: int
    driver_id: int
    start: Optional[str] = Field(None, max_length=500)
    destination: Optional[str] = Field(None, max_length=500)
    pickup_time: Optional[str] = Field(None, max_length=100, description="Free-form pickup date and time")


class RidePartyResponse(BaseModel):
    id: int
    name: str
    number: str


class RideResponse(BaseModel):
    """Schema for ride response."""
    id: int
    customer: RidePartyResponse
    driver: RidePartyResponse
    proxy_number: str
    start: Optional[str]
    destination: Optional[str]
    pickup_time: Optional[str]
    created_at: datetime


class RideListResponse(BaseModel):
    rides: List[RideResponse]
    total: int


class RideCreateResponse(BaseModel):
    """Response after ride creation."""
    ride: RideResponse
    notified: List[str]
    failed_notifications: List[str]


class RideEventResponse(BaseModel):
    """Audit entry concerning a ride."""
    id: int
    action: str
    actor_id: Optional[int]
    actor_number: Optional[str]
    meta_data: Optional[dict]
    timestamp: datetime
    
    class Config:
        from_attributes = True
