"""
Directory schemas.

Request and response models for customers, drivers and proxy numbers.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List

from rideproxy.app.models.enums import PartyRole


class PartyCreate(BaseModel):
    """Schema for registering a customer or driver."""
    name: str = Field(..., min_length=1, max_length=200)
    number: str = Field(
        ..., min_length=3, max_length=32, pattern=r"^[0-9]+$",
        description="Phone number in international format without a leading +, as MessageBird reports it"
    )


class PartyResponse(BaseModel):
    """Schema for customer/driver response."""
    id: int
    name: str
    number: str
    role: PartyRole
    created_at: datetime
    
    class Config:
        from_attributes = True


class PartyListResponse(BaseModel):
    parties: List[PartyResponse]
    total: int


class ProxyNumberCreate(BaseModel):
    """Schema for adding a number to the proxy pool."""
    number: str = Field(..., min_length=3, max_length=32, pattern=r"^[0-9]+$", description="Digits only, no leading +")


class ProxyNumberResponse(BaseModel):
    id: int
    number: str
    created_at: datetime
    
    class Config:
        from_attributes = True


class ProxyPoolResponse(BaseModel):
    proxy_numbers: List[ProxyNumberResponse]
    total: int
