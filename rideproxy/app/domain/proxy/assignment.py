"""
Proxy number assignment.

Picks a proxy number for a new customer/driver pairing so that no party, and
no phone number, is ever bound to the same proxy number through two
different rides. That uniqueness is what lets an inbound (proxy number,
sender number) pair be mapped back to exactly one ride. A number registered
as both a customer and a driver has two party ids, so both keys are checked.

Rotation: a proxy number is reused across rides whose parties do not
overlap, so a small pool can serve many concurrent rides.
"""

import enum
import logging
import random
from collections import defaultdict
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from rideproxy.app.core.exceptions import NoAvailableProxyError
from rideproxy.app.domain.proxy.snapshots import PairingSnapshot, ProxyNumberSnapshot

logger = logging.getLogger("rideproxy.assignment")


class SelectionPolicy(str, enum.Enum):
    """
    Order in which pool members are tried.
    
    FIRST: ascending proxy number id
    RANDOM: a shuffle drawn from the supplied random generator
    """
    FIRST = "first"
    RANDOM = "random"


def binding_set(history: Iterable[PairingSnapshot]) -> FrozenSet[Tuple[int, int]]:
    """Flatten every ride into its (party id, proxy id) bindings."""
    return frozenset(pair for pairing in history for pair in pairing.bindings())


def bindings_by_party(history: Iterable[PairingSnapshot]) -> Dict[int, Set[int]]:
    """Index bindings as party id -> proxy ids already used by that party."""
    index: Dict[int, Set[int]] = defaultdict(set)
    for pairing in history:
        for party_id, proxy_id in pairing.bindings():
            index[party_id].add(proxy_id)
    return index


def bindings_by_number(history: Iterable[PairingSnapshot]) -> Dict[str, Set[int]]:
    """Index bindings as phone number -> proxy ids already used by that number."""
    index: Dict[str, Set[int]] = defaultdict(set)
    for pairing in history:
        for number, proxy_id in pairing.number_bindings():
            index[number].add(proxy_id)
    return index


def has_conflict(
    index: Dict[int, Set[int]],
    proxy_id: int,
    customer_id: int,
    driver_id: int
) -> bool:
    """True if either party is already bound to the proxy number."""
    return proxy_id in index.get(customer_id, ()) or proxy_id in index.get(driver_id, ())


def _candidate_order(
    pool: Iterable[ProxyNumberSnapshot],
    policy: SelectionPolicy,
    rng: Optional[random.Random]
) -> List[ProxyNumberSnapshot]:
    candidates = sorted(pool, key=lambda proxy: proxy.id)
    if policy == SelectionPolicy.RANDOM:
        (rng or random.Random()).shuffle(candidates)
    return candidates


def allocate_proxy_number(
    pool: Iterable[ProxyNumberSnapshot],
    history: Iterable[PairingSnapshot],
    customer_id: int,
    driver_id: int,
    policy: SelectionPolicy = SelectionPolicy.FIRST,
    rng: Optional[random.Random] = None,
    customer_number: Optional[str] = None,
    driver_number: Optional[str] = None
) -> ProxyNumberSnapshot:
    """
    Select a proxy number for a new customer/driver pairing.
    
    Args:
        pool: All proxy numbers
        history: All existing rides
        customer_id: Customer of the new ride
        driver_id: Driver of the new ride
        policy: Candidate ordering
        rng: Random generator used by the RANDOM policy
        customer_number: Phone number of the customer, checked against
            bindings held under other party ids
        driver_number: Phone number of the driver, same as above
    
    Returns:
        The first candidate bound to neither party nor either phone number
    
    Raises:
        NoAvailableProxyError: If the pool is empty or every candidate conflicts
    """
    candidates = _candidate_order(pool, policy, rng)
    history = tuple(history)
    
    if not candidates:
        raise NoAvailableProxyError(customer_id=customer_id, driver_id=driver_id, pool_size=0)
    
    # No rides yet: every proxy number is free
    if not history:
        return candidates[0]
    
    party_index = bindings_by_party(history)
    number_index = bindings_by_number(history)
    numbers = [number for number in (customer_number, driver_number) if number]
    for proxy in candidates:
        if has_conflict(party_index, proxy.id, customer_id, driver_id):
            continue
        if any(proxy.id in number_index.get(number, ()) for number in numbers):
            continue
        return proxy
    
    logger.warning(
        "Proxy pool exhausted for customer %s and driver %s (pool size %d)",
        customer_id, driver_id, len(candidates)
    )
    raise NoAvailableProxyError(
        customer_id=customer_id,
        driver_id=driver_id,
        pool_size=len(candidates)
    )
