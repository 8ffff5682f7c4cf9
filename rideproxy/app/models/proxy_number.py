"""
Proxy number database model.

Proxy numbers form a shared pool; a number may back many rides at once.
"""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from rideproxy.app.db.session import Base


class ProxyNumber(Base):
    """Proxy number model."""
    __tablename__ = "proxy_numbers"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    number = Column(String(32), unique=True, nullable=False, index=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<ProxyNumber(id={self.id}, number='{self.number}')>"
