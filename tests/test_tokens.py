"""Tests for JWT helpers."""

import base64
import json
from datetime import UTC, datetime
from typing import Any

import pytest

from enphase_api import tokens
from enphase_api.exceptions import DecodeError

from .conftest import create_test_jwt


def _create_jwt(header: dict[str, Any], payload: Any) -> str:
    """Create a JWT token from header and payload."""
    header_encoded = (
        base64.urlsafe_b64encode(json.dumps(header).encode()).decode().rstrip("=")
    )
    payload_encoded = (
        base64.urlsafe_b64encode(json.dumps(payload).encode()).decode().rstrip("=")
    )
    return f"{header_encoded}.{payload_encoded}.signature"


class TestLooksLikeJwt:
    """Tests for looks_like_jwt function."""

    def test_accepts_three_segments(self) -> None:
        """Test that a three-part token is recognized."""
        assert tokens.looks_like_jwt(create_test_jwt()) is True

    @pytest.mark.parametrize("raw", ["opaque", "a.b", "a..c", "a.b.c.d"])
    def test_rejects_other_shapes(self, raw: str) -> None:
        """Test that other shapes are not treated as JWTs."""
        assert tokens.looks_like_jwt(raw) is False


class TestDecodeJwtClaims:
    """Tests for decode_jwt_claims function."""

    def test_decodes_payload(self) -> None:
        """Test that the payload segment is decoded."""
        claims = tokens.decode_jwt_claims(_create_jwt({"alg": "ES256"}, {"exp": 1}))
        assert claims == {"exp": 1}

    def test_handles_base64_padding(self) -> None:
        """Test that unpadded base64 payloads of any length decode."""
        for sub in ("a", "ab", "abc", "abcd"):
            claims = tokens.decode_jwt_claims(_create_jwt({}, {"sub": sub}))
            assert claims["sub"] == sub

    def test_raises_for_invalid_format(self) -> None:
        """Test that a token without three parts raises DecodeError."""
        with pytest.raises(DecodeError, match="expected 3 parts"):
            tokens.decode_jwt_claims("invalid.jwt")

    def test_raises_for_non_json_payload(self) -> None:
        """Test that a payload that is not JSON raises DecodeError."""
        payload = base64.urlsafe_b64encode(b"not json").decode().rstrip("=")
        with pytest.raises(DecodeError, match="Invalid JWT payload"):
            tokens.decode_jwt_claims(f"header.{payload}.signature")

    def test_raises_for_non_object_payload(self) -> None:
        """Test that a JSON payload that is not an object raises DecodeError."""
        with pytest.raises(DecodeError, match="expected an object"):
            tokens.decode_jwt_claims(_create_jwt({}, [1, 2, 3]))


class TestTokenLifetime:
    """Tests for token_lifetime function."""

    def test_returns_issue_and_expiry(self) -> None:
        """Test that iat and exp are converted to datetimes."""
        issued_at, expires_at = tokens.token_lifetime(
            create_test_jwt(1_800_000_000, 1_799_990_000)
        )
        assert issued_at == datetime.fromtimestamp(1_799_990_000, UTC)
        assert expires_at == datetime.fromtimestamp(1_800_000_000, UTC)

    def test_opaque_token_has_no_lifetime(self) -> None:
        """Test that opaque tokens yield no lifetime."""
        assert tokens.token_lifetime("opaque-token") == (None, None)

    def test_missing_claims_yield_none(self) -> None:
        """Test that a JWT without date claims yields no lifetime."""
        raw = _create_jwt({"alg": "ES256"}, {"sub": "user"})
        assert tokens.token_lifetime(raw) == (None, None)

    def test_non_numeric_claim_raises(self) -> None:
        """Test that a non-numeric exp claim raises DecodeError."""
        raw = _create_jwt({"alg": "ES256"}, {"exp": "tomorrow"})
        with pytest.raises(DecodeError, match="'exp' is not a timestamp"):
            tokens.token_lifetime(raw)

    def test_out_of_range_claim_raises(self) -> None:
        """Test that an exp claim beyond the platform range raises DecodeError."""
        raw = _create_jwt({"alg": "ES256"}, {"exp": 1e20})
        with pytest.raises(DecodeError, match="'exp' is out of range"):
            tokens.token_lifetime(raw)


class TestEpochToDatetime:
    """Tests for epoch_to_datetime function."""

    def test_converts_seconds(self) -> None:
        """Test that epoch seconds become an aware datetime."""
        assert tokens.epoch_to_datetime(1_800_000_000, "value") == (
            datetime.fromtimestamp(1_800_000_000, UTC)
        )

    @pytest.mark.parametrize("value", ["2026-10-18T00:00:00Z", True, None])
    def test_non_numbers_raise(self, value: object) -> None:
        """Test that values that are not numbers raise DecodeError."""
        with pytest.raises(DecodeError, match="value is not a timestamp"):
            tokens.epoch_to_datetime(value, "value")

    @pytest.mark.parametrize("value", [1e20, -1e20, float("nan")])
    def test_out_of_range_raises(self, value: float) -> None:
        """Test that unrepresentable timestamps raise DecodeError."""
        with pytest.raises(DecodeError, match="value is out of range"):
            tokens.epoch_to_datetime(value, "value")
