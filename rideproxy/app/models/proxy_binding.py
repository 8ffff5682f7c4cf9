"""
Proxy binding database model.

Stores the (party, proxy number) halves of every ride so a second ride
binding the same party, or the same phone number, to the same proxy number
fails at commit.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from rideproxy.app.db.session import Base


class ProxyBinding(Base):
    """
    Proxy binding model.
    
    Two rows per ride, one for the customer and one for the driver.
    The unique constraints mirror the allocation conflict rule.
    """
    __tablename__ = "proxy_bindings"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    ride_id = Column(Integer, ForeignKey('rides.id'), nullable=False, index=True)
    party_id = Column(Integer, ForeignKey('parties.id'), nullable=False, index=True)
    # Copied from the party: one number may belong to a customer and a driver
    number = Column(String(32), nullable=False, index=True)
    proxy_number_id = Column(Integer, ForeignKey('proxy_numbers.id'), nullable=False, index=True)
    
    __table_args__ = (
        UniqueConstraint("party_id", "proxy_number_id", name="uq_proxy_bindings_party_proxy"),
        UniqueConstraint("number", "proxy_number_id", name="uq_proxy_bindings_number_proxy"),
    )
    
    def __repr__(self):
        return f"<ProxyBinding(party_id={self.party_id}, proxy_number_id={self.proxy_number_id})>"
