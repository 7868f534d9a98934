"""
Logging Processor Tests
"""
import structlog

from notevault.core.logging import REDACTED, add_service_info, bind_context, clear_context, redact_secrets


def test_secrets_are_masked():
    event = redact_secrets(None, "info", {
        "event": "Payment verification by non-buyer",
        "razorpay_signature": "9f2c...",
        "password": "hunter22",
        "order_id": "order_live_1",
    })
    assert event["razorpay_signature"] == REDACTED
    assert event["password"] == REDACTED
    assert event["order_id"] == "order_live_1"


def test_service_info_does_not_override_fields():
    event = add_service_info(None, "info", {"event": "Started", "env": "staging"})
    assert event["service"] == "notevault-backend"
    assert event["env"] == "staging"


def test_bound_context_reaches_every_event():
    bind_context(request_id="req-42", user_id="u-1")
    try:
        event = structlog.contextvars.merge_contextvars(None, "info", {"event": "Note viewed"})
        assert event["request_id"] == "req-42"
        assert event["user_id"] == "u-1"
    finally:
        clear_context()

    assert "request_id" not in structlog.contextvars.merge_contextvars(None, "info", {"event": "x"})
