"""
MessageBird Webhook Endpoints.

Inbound SMS is forwarded to the other party of the ride; inbound calls are
answered with an XML call flow.
"""

import logging

from fastapi import APIRouter, Depends, Form, Query
from fastapi.responses import PlainTextResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from rideproxy.app.db.session import get_db
from rideproxy.app.services import relay
from rideproxy.app.services.messaging import get_messenger

logger = logging.getLogger("rideproxy.webhooks")

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/sms", response_class=PlainTextResponse)
async def sms_webhook(
    originator: str = Form(..., description="Number that sent the SMS"),
    receiver: str = Form(..., description="Proxy number the SMS was sent to"),
    payload: str = Form("", description="Message body"),
    db: AsyncSession = Depends(get_db),
    messenger=Depends(get_messenger)
):
    """
    Relay an inbound SMS.
    
    MessageBird does not parse the reply, so every outcome answers "OK".
    """
    outcome = await relay.relay_message(db, messenger, originator=originator, receiver=receiver, payload=payload)
    logger.info("SMS from %s on %s: %s", originator, receiver, outcome.value)
    return "OK"


@router.get("/voice")
async def voice_webhook(
    source: str = Query(..., description="Number of the caller"),
    destination: str = Query(..., description="Proxy number that was dialed"),
    db: AsyncSession = Depends(get_db)
):
    """Answer an inbound call with a transfer or a spoken failure."""
    routing = await relay.route_call(db, source=source, destination=destination)
    return Response(content=routing.xml, media_type="application/xml")
