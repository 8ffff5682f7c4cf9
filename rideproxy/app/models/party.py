"""
Party database model.

A party is a customer or a driver identified by a phone number.
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum, UniqueConstraint
from sqlalchemy.sql import func
from rideproxy.app.db.session import Base
from rideproxy.app.models.enums import PartyRole


class Party(Base):
    """
    Party model.
    
    The phone number is unique per role and is the only key inbound
    calls and messages are matched on.
    """
    __tablename__ = "parties"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    number = Column(String(32), nullable=False, index=True)
    role = Column(Enum(PartyRole), nullable=False, index=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    __table_args__ = (
        UniqueConstraint("role", "number", name="uq_parties_role_number"),
    )
    
    def __repr__(self):
        return f"<Party(id={self.id}, name='{self.name}', role='{self.role.value}')>"
