"""
Dead Letter Queue (DLQ) Model.

Undelivered SMS: ride introductions and relayed messages that MessageBird
refused or that never reached it.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON
from sqlalchemy.sql import func
from rideproxy.app.db.session import Base


class DeadLetterQueue(Base):
    __tablename__ = "dead_letter_queue"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # "ride_notification" or "sms_relay"
    task_name = Column(String(100), nullable=False, index=True)
    recipient = Column(String(32), nullable=True, index=True)
    error_message = Column(Text, nullable=False)
    
    # originator, recipient, body
    payload = Column(JSON, nullable=True)
    provider_errors = Column(JSON, nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<DLQ(id={self.id}, task='{self.task_name}', recipient='{self.recipient}')>"
