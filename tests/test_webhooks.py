"""Tests for Twilio webhook signature verification."""

from driveassist.webhooks import compute_twilio_signature, verify_twilio_signature

URL = "https://example.com/v1/webhooks/twilio"
TOKEN = "12345"
PARAMS = {"From": "whatsapp:+15550001111", "Body": "LIST /Reports", "MessageSid": "SM1"}


class TestTwilioSignature:
    """Test signature computation and checks."""

    def test_signature_is_order_independent(self) -> None:
        reordered = dict(reversed(list(PARAMS.items())))
        assert compute_twilio_signature(URL, PARAMS, TOKEN) == compute_twilio_signature(
            URL, reordered, TOKEN
        )

    def test_valid_signature(self) -> None:
        signature = compute_twilio_signature(URL, PARAMS, TOKEN)
        assert verify_twilio_signature(URL, PARAMS, signature, TOKEN)

    def test_tampered_body(self) -> None:
        signature = compute_twilio_signature(URL, PARAMS, TOKEN)
        tampered = {**PARAMS, "Body": "DELETE /Reports"}
        assert not verify_twilio_signature(URL, tampered, signature, TOKEN)

    def test_wrong_url(self) -> None:
        signature = compute_twilio_signature(URL, PARAMS, TOKEN)
        assert not verify_twilio_signature(URL + "?x=1", PARAMS, signature, TOKEN)

    def test_missing_header(self) -> None:
        assert not verify_twilio_signature(URL, PARAMS, None, TOKEN)
