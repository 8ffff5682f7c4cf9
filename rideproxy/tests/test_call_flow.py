"""
Tests for the XML call flows returned to inbound calls.
"""

from rideproxy.app.services.call_flow import failure_call_flow, transfer_call_flow


def test_transfer_call_flow():
    assert transfer_call_flow("319700002") == (
        "<?xml version='1.0' encoding='UTF-8'?><Transfer destination='319700002' make='true' />"
    )


def test_failure_call_flow():
    xml = failure_call_flow("Sorry, we cannot identify your transaction.", language="en-GB", voice="female")
    
    assert xml == (
        "<?xml version='1.0' encoding='UTF-8'?>"
        "<Say language='en-GB' voice='female'>Sorry, we cannot identify your transaction.</Say>"
        "<Hangup />"
    )


def test_failure_call_flow_uses_configured_message():
    xml = failure_call_flow()
    
    assert "Sorry, we cannot identify your transaction." in xml
    assert xml.endswith("</Say><Hangup />")


def test_values_are_escaped():
    assert "destination='&apos;&lt;x&gt;'" in transfer_call_flow("'<x>")
    assert ">Fish &amp; chips</Say>" in failure_call_flow("Fish & chips")
