"""
Immutable snapshots of parties, proxy numbers and rides.

The allocation and routing functions work on these frozen values rather
than on ORM objects, so they stay pure and can run on any snapshot the
caller loaded.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class PartySnapshot:
    id: int
    name: str
    number: str


@dataclass(frozen=True)
class ProxyNumberSnapshot:
    id: int
    number: str


@dataclass(frozen=True)
class PairingSnapshot:
    """One ride: a customer and a driver bound to a proxy number."""
    id: int
    customer: PartySnapshot
    driver: PartySnapshot
    proxy_number: ProxyNumberSnapshot
    metadata: Dict[str, Optional[str]] = field(default_factory=dict, compare=False, hash=False)

    def bindings(self) -> Tuple[Tuple[int, int], Tuple[int, int]]:
        """The (party id, proxy id) pairs this ride occupies."""
        return (
            (self.customer.id, self.proxy_number.id),
            (self.driver.id, self.proxy_number.id),
        )

    def number_bindings(self) -> Tuple[Tuple[str, int], Tuple[str, int]]:
        """The (phone number, proxy id) pairs this ride occupies."""
        return (
            (self.customer.number, self.proxy_number.id),
            (self.driver.number, self.proxy_number.id),
        )
