"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from rideproxy.app.api.v1.endpoints import directory, rides, webhooks

router = APIRouter()

# Customers, drivers and the proxy pool
router.include_router(directory.router)

# Ride creation and listing
router.include_router(rides.router)

# MessageBird callbacks
router.include_router(webhooks.router)
