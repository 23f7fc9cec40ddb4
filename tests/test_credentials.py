"""Tests for offline JWT claim decoding."""
import time

from campus_session.session.credentials import decode_claims, expiration_ms

from conftest import _b64, make_jwt


class TestDecodeClaims:
    def test_decodes_payload(self):
        token = make_jwt(60, sub="7")
        claims = decode_claims(token)
        assert claims["sub"] == "7"
        assert "exp" in claims

    def test_handles_missing_padding(self):
        """Payloads whose length is not a multiple of 4 still decode."""
        token = f"{_b64({'alg': 'none'})}.{_b64({'exp': 1, 'a': 'xy'})}.s"
        assert decode_claims(token) == {"exp": 1, "a": "xy"}

    def test_not_a_jwt(self):
        assert decode_claims("not-a-jwt") is None

    def test_empty_and_none(self):
        assert decode_claims("") is None
        assert decode_claims(None) is None

    def test_garbage_middle_segment(self):
        assert decode_claims("aaa.!!!not-base64!!!.ccc") is None

    def test_payload_not_an_object(self):
        token = f"h.{_b64([1, 2])}.s"
        assert decode_claims(token) is None


class TestExpirationMs:
    def test_seconds_converted_to_millis(self):
        token = f"h.{_b64({'exp': 1700000000})}.s"
        assert expiration_ms(token) == 1700000000 * 1000

    def test_roughly_now_plus_lifetime(self):
        token = make_jwt(600)
        remaining = expiration_ms(token) - int(time.time() * 1000)
        assert 590_000 < remaining <= 600_000

    def test_missing_exp(self):
        assert expiration_ms(f"h.{_b64({'sub': 'x'})}.s") is None

    def test_non_numeric_exp(self):
        assert expiration_ms(f"h.{_b64({'exp': 'soon'})}.s") is None
        assert expiration_ms(f"h.{_b64({'exp': True})}.s") is None

    def test_malformed(self):
        assert expiration_ms("not-a-jwt") is None
