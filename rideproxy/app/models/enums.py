"""
Party role enumeration.

Customers and drivers share one identifier space so that the binding
conflict check can compare identifiers across roles.
"""

import enum


class PartyRole(str, enum.Enum):
    """
    Party role enumeration.
    
    Roles:
        CUSTOMER: Books rides and is picked up
        DRIVER: Picks customers up
    """
    CUSTOMER = "CUSTOMER"
    DRIVER = "DRIVER"
