"""
Ride database model.

A ride pairs one customer with one driver through one proxy number.
Rides are append-only: they are written once and never updated.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from rideproxy.app.db.session import Base


class Ride(Base):
    """
    Ride model.
    
    Trip metadata (start, destination, pickup time) is free text and
    plays no part in proxy allocation or routing.
    """
    __tablename__ = "rides"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Pairing
    customer_id = Column(Integer, ForeignKey('parties.id'), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey('parties.id'), nullable=False, index=True)
    proxy_number_id = Column(Integer, ForeignKey('proxy_numbers.id'), nullable=False, index=True)
    
    # Trip metadata
    start = Column(String(500), nullable=True)
    destination = Column(String(500), nullable=True)
    pickup_time = Column(String(100), nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    customer = relationship("Party", foreign_keys=[customer_id], lazy="raise")
    driver = relationship("Party", foreign_keys=[driver_id], lazy="raise")
    proxy_number = relationship("ProxyNumber", lazy="raise")
    
    def __repr__(self):
        return (
            f"<Ride(id={self.id}, customer_id={self.customer_id}, "
            f"driver_id={self.driver_id}, proxy_number_id={self.proxy_number_id})>"
        )
