"""
MessageBird SMS client.

Sends SMS through the MessageBird REST API. Calls go through a circuit
breaker so a failing provider does not stall every inbound webhook.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from rideproxy.app.core.config import settings
from rideproxy.app.core.exceptions import SendFailedError
from rideproxy.app.core.reliability import CircuitBreaker, CircuitOpenError, messaging_circuit_breaker

logger = logging.getLogger("rideproxy.messaging")


class MessageBirdClient:
    """Thin async wrapper over the MessageBird `/messages` endpoint."""
    
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://rest.messagebird.com",
        timeout: float = 10.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.circuit_breaker = circuit_breaker or CircuitBreaker()
        self.transport = transport
    
    async def _post_message(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            "Authorization": f"AccessKey {self.api_key}",
            "Accept": "application/json",
        }
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport
        ) as client:
            response = await client.post("/messages", json=payload, headers=headers)
        
        if response.status_code >= 400:
            errors = _error_list(response)
            for error in errors:
                logger.error("MessageBird error: %r", error)
            raise SendFailedError(
                ",".join(payload["recipients"]),
                f"HTTP {response.status_code}",
                errors=errors
            )
        return response.json()
    
    async def send_sms(self, originator: str, recipient: str, body: str) -> Dict[str, Any]:
        """
        Send one SMS.
        
        Args:
            originator: Number the message appears to come from (a proxy number)
            recipient: Destination phone number
            body: Message text
        
        Returns:
            The message resource returned by MessageBird
        
        Raises:
            SendFailedError: On missing credentials, transport errors,
                provider rejections or an open circuit
        """
        if not self.api_key:
            raise SendFailedError(recipient, "MessageBird API key is not configured")
        
        payload = {"originator": originator, "recipients": [recipient], "body": body}
        try:
            message = await self.circuit_breaker.call(self._post_message, payload)
        except CircuitOpenError:
            raise SendFailedError(recipient, "Messaging circuit is open")
        except httpx.HTTPError as exc:
            raise SendFailedError(recipient, f"{type(exc).__name__}: {exc}")
        
        logger.info("Sent sms %s from %s to %s", message.get("id"), originator, recipient)
        return message


def _error_list(response: httpx.Response) -> List[Dict[str, Any]]:
    try:
        return list(response.json().get("errors", []))
    except ValueError:
        return [{"description": response.text}]


messagebird_client = MessageBirdClient(
    api_key=settings.messagebird_api_key,
    base_url=settings.messagebird_base_url,
    timeout=settings.messagebird_timeout_seconds,
    circuit_breaker=messaging_circuit_breaker,
)


async def get_messenger():
    """FastAPI dependency returning the shared SMS client."""
    return messagebird_client
