"""Unit tests for auth/tokens.py -- JWT codec, bcrypt helpers, token extraction.

Covers:
- issue() / verify() bind principal id and kind
- expired, tampered, foreign-key and malformed tokens all raise InvalidToken
- tokens missing the kind claim are rejected
- peek_expiry() reads exp without verifying
- bcrypt hash / compare, including malformed hashes
- extract_token() prefers the cookie over the Bearer header
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from jose import jwt

from auth.errors import InvalidToken
from auth.models import PrincipalKind
from auth.tokens import TokenCodec, extract_token, hash_password, verify_password
from payloads import unsigned_token


def _request(cookies: dict | None = None, headers: dict | None = None) -> SimpleNamespace:
    return SimpleNamespace(cookies=cookies or {}, headers=headers or {})


class TestTokenCodec:
    def test_issue_then_verify_round_trips_identity(self, codec: TokenCodec) -> None:
        token = codec.issue("abc-123", PrincipalKind.DRIVER)
        claims = codec.verify(token)
        assert claims.principal_id == "abc-123"
        assert claims.kind is PrincipalKind.DRIVER
        assert claims.expires_at - claims.issued_at == pytest.approx(3600, abs=1)

    def test_expired_token_is_invalid(self, codec: TokenCodec) -> None:
        token = codec.issue("abc-123", PrincipalKind.RIDER, expire_seconds=-10)
        with pytest.raises(InvalidToken):
            codec.verify(token)

    def test_tampered_signature_is_invalid(self, codec: TokenCodec) -> None:
        token = codec.issue("abc-123", PrincipalKind.RIDER)
        head, payload, sig = token.split(".")
        flipped = ("A" if sig[0] != "A" else "B") + sig[1:]
        with pytest.raises(InvalidToken):
            codec.verify(f"{head}.{payload}.{flipped}")

    def test_token_signed_with_other_secret_is_invalid(self, codec: TokenCodec) -> None:
        other = TokenCodec("another-secret-abcdefghijklmnopqrstuvwxyz", expire_seconds=3600)
        token = other.issue("abc-123", PrincipalKind.RIDER)
        with pytest.raises(InvalidToken):
            codec.verify(token)

    @pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b.c", "Bearer xyz"])
    def test_malformed_token_is_invalid(self, codec: TokenCodec, garbage: str) -> None:
        with pytest.raises(InvalidToken):
            codec.verify(garbage)

    def test_token_without_kind_claim_is_invalid(self) -> None:
        secret = "manual-secret-abcdefghijklmnopqrstuvwxyz"
        now = datetime.now(timezone.utc)
        token = jwt.encode({"_id": "abc", "iat": now, "exp": now + timedelta(hours=1)}, secret, algorithm="HS256")
        with pytest.raises(InvalidToken):
            TokenCodec(secret, 3600).verify(token)

    def test_failure_reasons_are_indistinguishable(self, codec: TokenCodec) -> None:
        expired = codec.issue("abc", PrincipalKind.RIDER, expire_seconds=-10)
        messages = set()
        for bad in (expired, "garbage", expired[:-3] + "xyz"):
            with pytest.raises(InvalidToken) as excinfo:
                codec.verify(bad)
            messages.add(str(excinfo.value))
        assert len(messages) == 1

    def test_peek_expiry(self, codec: TokenCodec) -> None:
        token = codec.issue("abc", PrincipalKind.RIDER)
        assert codec.peek_expiry(token) == pytest.approx(codec.verify(token).expires_at)
        assert codec.peek_expiry("garbage") is None

    @pytest.mark.parametrize("exp", ["nan", "inf", "-inf", "soon"])
    def test_peek_expiry_ignores_non_finite_exp(self, codec: TokenCodec, exp: str) -> None:
        assert codec.peek_expiry(unsigned_token({"exp": exp})) is None

    def test_empty_secret_rejected(self) -> None:
        with pytest.raises(ValueError):
            TokenCodec("", 3600)


class TestPasswordHashing:
    def test_hash_verifies_and_hides_plaintext(self) -> None:
        hashed = hash_password("pw1")
        assert hashed != "pw1"
        assert verify_password("pw1", hashed)
        assert not verify_password("pw2", hashed)

    def test_malformed_hash_returns_false(self) -> None:
        assert verify_password("pw1", "not-a-bcrypt-hash") is False


class TestExtractToken:
    def test_cookie_takes_priority_over_header(self) -> None:
        req = _request(cookies={"token": "from-cookie"}, headers={"Authorization": "Bearer from-header"})
        assert extract_token(req) == "from-cookie"

    def test_bearer_header(self) -> None:
        assert extract_token(_request(headers={"Authorization": "Bearer abc.def.ghi"})) == "abc.def.ghi"

    def test_missing_everywhere(self) -> None:
        assert extract_token(_request()) is None

    def test_non_bearer_scheme_ignored(self) -> None:
        assert extract_token(_request(headers={"Authorization": "Basic dXNlcjpwYXNz"})) is None

    def test_bearer_without_credentials(self) -> None:
        assert extract_token(_request(headers={"Authorization": "Bearer "})) is None
