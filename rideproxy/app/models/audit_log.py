"""
Audit Log Database Model.

Tracks ride creation, allocation failures and inbound routing outcomes.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from rideproxy.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model.
    
    Events logged:
    - RIDE_CREATED / PROXY_ALLOCATION_FAILED
    - MESSAGE_RELAYED / CALL_TRANSFERRED
    - ROUTING_UNKNOWN_PROXY / ROUTING_UNRECOGNIZED_SENDER
    - ROUTING_CONSISTENCY_FAULT
    """
    __tablename__ = "audit_logs"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Which party triggered the event (None for system actions)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_number = Column(String(32), nullable=True)
    
    # What action was performed
    action = Column(String(100), nullable=False, index=True)
    
    # Ride the event concerns, if any
    ride_id = Column(Integer, index=True, nullable=True)
    
    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)
    
    # Timestamp
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    
    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', ride_id={self.ride_id})>"
