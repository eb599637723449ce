"""Unit tests for auth/tokens.py -- access-token codec and refresh-token format.

Covers:
- create/decode round trip returns the user id and handle
- expired tokens raise TokenExpired, tampered or foreign tokens raise TokenInvalid
- tokens missing the access type claim are rejected
- refresh tokens have the "<16 hex>.<64 hex>" shape and split cleanly
"""

from __future__ import annotations

import pytest
from jose import jwt

from auth.errors import RefreshTokenInvalid, TokenExpired, TokenInvalid
from auth.tokens import (
    create_access_token,
    decode_access_token,
    generate_refresh_token,
    split_refresh_token,
)
from core.config import get_settings


class TestAccessTokens:
    def test_round_trip(self) -> None:
        claims = decode_access_token(create_access_token(42, "mimi"))
        assert claims.user_id == 42
        assert claims.username == "mimi"

    def test_default_lifetime_is_one_hour(self) -> None:
        """Every issued token uses the configured uniform lifetime."""
        payload = jwt.get_unverified_claims(create_access_token(1, "mimi"))
        assert payload["exp"] - payload["iat"] == get_settings().access_token_expire_seconds == 3600

    def test_expired_token_raises_token_expired(self) -> None:
        token = create_access_token(1, "mimi", expire_seconds=-10)
        with pytest.raises(TokenExpired):
            decode_access_token(token)

    def test_tampered_token_raises_token_invalid(self) -> None:
        token = create_access_token(1, "mimi")
        head, body, sig = token.split(".")
        tampered = f"{head}.{body}.{sig[:-2]}{'AA' if sig[-2:] != 'AA' else 'BB'}"
        with pytest.raises(TokenInvalid):
            decode_access_token(tampered)

    def test_token_signed_with_other_key_is_rejected(self) -> None:
        token = jwt.encode({"user_id": 1, "username": "mimi", "type": "access"}, "x" * 40, algorithm="HS256")
        with pytest.raises(TokenInvalid):
            decode_access_token(token)

    def test_missing_type_claim_is_rejected(self) -> None:
        token = jwt.encode({"user_id": 1, "username": "mimi"}, get_settings().secret_key, algorithm="HS256")
        with pytest.raises(TokenInvalid):
            decode_access_token(token)

    def test_garbage_is_rejected(self) -> None:
        with pytest.raises(TokenInvalid):
            decode_access_token("not-a-jwt")


class TestRefreshTokens:
    def test_shape(self) -> None:
        token_id, secret = split_refresh_token(generate_refresh_token())
        assert len(token_id) == 16
        assert len(secret) == 64
        int(token_id, 16)
        int(secret, 16)

    def test_tokens_are_unique(self) -> None:
        assert generate_refresh_token() != generate_refresh_token()

    @pytest.mark.parametrize("bad", ["", "abc", "a" * 81, "abcd.efgh", "0123456789abcdef" + "x" * 64])
    def test_malformed_tokens_are_rejected(self, bad: str) -> None:
        with pytest.raises(RefreshTokenInvalid):
            split_refresh_token(bad)
