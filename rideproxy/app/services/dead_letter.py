"""
Dead letter capture for outbound messages the provider did not accept.
"""

import logging
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from rideproxy.app.core.exceptions import SendFailedError
from rideproxy.app.models.dlq import DeadLetterQueue

logger = logging.getLogger("rideproxy.dead_letter")


async def capture_failed_task(
    db: AsyncSession,
    task_name: str,
    error: SendFailedError,
    payload: Dict[str, Any]
) -> DeadLetterQueue:
    """Persist an undelivered SMS so it can be inspected or resent by hand."""
    item = DeadLetterQueue(
        task_name=task_name,
        recipient=payload.get("recipient"),
        error_message=error.message,
        payload=payload,
        provider_errors=error.details.get("errors") or None
    )
    db.add(item)
    await db.commit()
    logger.error("Captured undelivered %s to %s in DLQ (id=%s)", task_name, item.recipient, item.id)
    return item
