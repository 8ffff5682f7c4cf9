"""
Voice call flow documents.

Builds the two XML call flows returned to MessageBird for inbound calls:
a transfer to the counterparty, or a spoken failure followed by a hangup.
"""

from typing import Optional
from xml.sax.saxutils import escape

from rideproxy.app.core.config import settings

XML_DECLARATION = "<?xml version='1.0' encoding='UTF-8'?>"


def _attr(value: str) -> str:
    return "'" + escape(value, {"'": "&apos;"}) + "'"


def transfer_call_flow(destination: str) -> str:
    """Call flow that bridges the caller to `destination`."""
    return f"{XML_DECLARATION}<Transfer destination={_attr(destination)} make='true' />"


def failure_call_flow(message: Optional[str] = None, language: Optional[str] = None, voice: Optional[str] = None) -> str:
    """Call flow that speaks `message` and hangs up."""
    message = settings.voice_failure_message if message is None else message
    language = language or settings.voice_language
    voice = voice or settings.voice_gender
    return (
        f"{XML_DECLARATION}"
        f"<Say language={_attr(language)} voice={_attr(voice)}>{escape(message)}</Say>"
        "<Hangup />"
    )
