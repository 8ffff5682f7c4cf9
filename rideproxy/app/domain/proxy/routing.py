"""
Inbound routing resolution.

Maps an inbound call or SMS, identified by the proxy number it arrived on
and the number that sent it, to the ride it belongs to and the party it
must be forwarded to.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Tuple

from rideproxy.app.core.exceptions import UnknownProxyError, UnrecognizedSenderError
from rideproxy.app.domain.proxy.snapshots import PairingSnapshot
from rideproxy.app.models.enums import PartyRole

logger = logging.getLogger("rideproxy.routing")


@dataclass(frozen=True)
class RouteResolution:
    pairing: PairingSnapshot
    sender_role: PartyRole
    counterparty_number: str
    # Other rides that also matched; non-empty only when bindings were corrupted upstream
    ambiguous_pairing_ids: Tuple[int, ...] = ()

    @property
    def is_ambiguous(self) -> bool:
        return bool(self.ambiguous_pairing_ids)


def _classify(pairing: PairingSnapshot, sender_number: str):
    if pairing.customer.number == sender_number:
        return PartyRole.CUSTOMER, pairing.driver.number
    if pairing.driver.number == sender_number:
        return PartyRole.DRIVER, pairing.customer.number
    return None


def resolve_route(
    history: Iterable[PairingSnapshot],
    proxy_number: str,
    sender_number: str
) -> RouteResolution:
    """
    Find the ride behind an inbound event and the number to forward it to.
    
    Every ride on the proxy number is checked, since one proxy number
    can back several rides with disjoint parties.
    
    Raises:
        UnknownProxyError: No ride uses the proxy number
        UnrecognizedSenderError: Rides use the proxy number but the sender
            is not a party to any of them
    """
    on_proxy = sorted(
        (pairing for pairing in history if pairing.proxy_number.number == proxy_number),
        key=lambda pairing: pairing.id
    )
    if not on_proxy:
        raise UnknownProxyError(proxy_number)
    
    matches = []
    for pairing in on_proxy:
        classified = _classify(pairing, sender_number)
        if classified is not None:
            matches.append((pairing, classified))
    
    if not matches:
        raise UnrecognizedSenderError(
            proxy_number,
            sender_number,
            candidate_ride_ids=[pairing.id for pairing in on_proxy]
        )
    
    pairing, (sender_role, counterparty_number) = matches[0]
    ambiguous = tuple(other.id for other, _ in matches[1:])
    if ambiguous:
        logger.error(
            "Consistency fault: sender %s matches rides %s on proxy %s; routing via ride %s",
            sender_number, [pairing.id, *ambiguous], proxy_number, pairing.id
        )
    
    return RouteResolution(
        pairing=pairing,
        sender_role=sender_role,
        counterparty_number=counterparty_number,
        ambiguous_pairing_ids=ambiguous
    )


def resolve_counterparty(
    history: Iterable[PairingSnapshot],
    proxy_number: str,
    sender_number: str
) -> str:
    """Return only the phone number the inbound event should reach."""
    return resolve_route(history, proxy_number, sender_number).counterparty_number
