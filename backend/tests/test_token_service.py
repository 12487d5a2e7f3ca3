"""
Inkwell Backend — Token Codec Unit Tests
==========================================

What:  Issue/verify round trips, the expiry boundary and forged tokens.
How:   A controllable clock drives expiry without sleeping.
"""

import pytest
from jose import jwt

from inkwell.exceptions import InvalidCredentialError
from inkwell.services.token_service import TokenCodec

SECRET = "unit-test-secret"


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def codec(clock):
    return TokenCodec(SECRET, default_ttl=3600, clock=clock)


class TestIssueAndVerify:

    def test_verify_returns_subject(self, codec):
        token = codec.issue("user-123")
        assert codec.verify(token) == "user-123"

    def test_claims_carry_issue_and_expiry(self, codec, clock):
        token = codec.issue("user-123", ttl=60)
        claims = jwt.get_unverified_claims(token)
        assert claims["sub"] == "user-123"
        assert claims["iat"] == int(clock.now)
        assert claims["exp"] == int(clock.now) + 60

    def test_empty_secret_is_rejected(self):
        with pytest.raises(ValueError):
            TokenCodec("")

    def test_non_positive_ttl_is_rejected(self, codec):
        with pytest.raises(ValueError):
            codec.issue("user-123", ttl=0)


class TestExpiry:

    def test_valid_until_one_second_before_expiry(self, codec, clock):
        token = codec.issue("u1", ttl=100)
        clock.now += 99
        assert codec.verify(token) == "u1"

    def test_invalid_exactly_at_expiry(self, codec, clock):
        token = codec.issue("u1", ttl=100)
        clock.now += 100
        with pytest.raises(InvalidCredentialError):
            codec.verify(token)

    def test_invalid_after_expiry(self, codec, clock):
        token = codec.issue("u1", ttl=100)
        clock.now += 5000
        with pytest.raises(InvalidCredentialError) as exc_info:
            codec.verify(token)
        assert exc_info.value.context["reason"] == "expired"

    def test_default_ttl_applies(self, codec, clock):
        token = codec.issue("u1")
        clock.now += 3599
        assert codec.verify(token) == "u1"
        clock.now += 1
        with pytest.raises(InvalidCredentialError):
            codec.verify(token)


class TestForgedTokens:

    def test_wrong_secret(self, clock):
        other = TokenCodec("another-secret", clock=clock)
        token = other.issue("u1")
        with pytest.raises(InvalidCredentialError):
            TokenCodec(SECRET, clock=clock).verify(token)

    def test_tampered_payload(self, codec):
        header, payload, signature = codec.issue("u1").split(".")
        forged_payload = jwt.encode({"sub": "admin", "exp": 9_999_999_999}, "x").split(".")[1]
        with pytest.raises(InvalidCredentialError):
            codec.verify(f"{header}.{forged_payload}.{signature}")

    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c", "a.b"])
    def test_malformed(self, codec, token):
        with pytest.raises(InvalidCredentialError):
            codec.verify(token)

    def test_algorithm_mismatch(self, clock):
        token = jwt.encode({"sub": "u1", "exp": int(clock.now) + 60}, SECRET, algorithm="HS512")
        with pytest.raises(InvalidCredentialError):
            TokenCodec(SECRET, clock=clock).verify(token)

    def test_missing_subject(self, clock):
        token = jwt.encode({"exp": int(clock.now) + 60}, SECRET, algorithm="HS256")
        with pytest.raises(InvalidCredentialError):
            TokenCodec(SECRET, clock=clock).verify(token)

    def test_missing_expiry(self, clock):
        token = jwt.encode({"sub": "u1"}, SECRET, algorithm="HS256")
        with pytest.raises(InvalidCredentialError):
            TokenCodec(SECRET, clock=clock).verify(token)
