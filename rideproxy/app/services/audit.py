"""
Audit logging service.

Records ride creation and the outcome of every inbound routing attempt.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from rideproxy.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    PARTY_CREATED = "PARTY_CREATED"
    PROXY_NUMBER_ADDED = "PROXY_NUMBER_ADDED"
    
    # Ride creation
    RIDE_CREATED = "RIDE_CREATED"
    PROXY_ALLOCATION_FAILED = "PROXY_ALLOCATION_FAILED"
    
    # Inbound routing
    MESSAGE_RELAYED = "MESSAGE_RELAYED"
    CALL_TRANSFERRED = "CALL_TRANSFERRED"
    ROUTING_UNKNOWN_PROXY = "ROUTING_UNKNOWN_PROXY"
    ROUTING_UNRECOGNIZED_SENDER = "ROUTING_UNRECOGNIZED_SENDER"
    ROUTING_CONSISTENCY_FAULT = "ROUTING_CONSISTENCY_FAULT"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_number: Optional[str] = None,
    ride_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Log an event to the audit log.
    
    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: Party that triggered the event
        actor_number: Phone number that triggered the event
        ride_id: Ride the event concerns
        metadata: Additional context as JSON
        
    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_number=actor_number,
        action=action,
        ride_id=ride_id,
        meta_data=metadata
    )
    
    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)
    
    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    ride_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering, most recent first.
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))
    
    if ride_id:
        query = query.where(AuditLog.ride_id == ride_id)
    
    if action:
        query = query.where(AuditLog.action == action)
    
    query = query.limit(limit)
    
    result = await db.execute(query)
    return list(result.scalars().all())
