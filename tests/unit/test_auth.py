"""
Unit tests for bearer-token authentication.
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import jwt

from reelstore.api.auth import get_bearer_token, make_jwt, validate_jwt
from reelstore.core.pipeline import AuthenticationError

SECRET = "test-secret"


class TestGetBearerToken:
    """Tests for parsing the Authorization header."""

    def test_extracts_token(self):
        assert get_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_scheme_is_case_insensitive(self):
        assert get_bearer_token("bearer abc") == "abc"

    @pytest.mark.parametrize("header", [None, ""])
    def test_missing_header(self, header):
        with pytest.raises(AuthenticationError, match="Couldn't find JWT"):
            get_bearer_token(header)

    @pytest.mark.parametrize("header", ["Basic dXNlcjpwYXNz", "Bearer", "Bearer   ", "abc"])
    def test_malformed_header(self, header):
        with pytest.raises(AuthenticationError, match="Malformed"):
            get_bearer_token(header)


class TestValidateJwt:
    """Tests for token verification."""

    def test_round_trip_returns_user_id(self):
        user_id = uuid4()

        assert validate_jwt(make_jwt(user_id, SECRET), SECRET) == user_id

    def test_wrong_secret(self):
        token = make_jwt(uuid4(), SECRET)

        with pytest.raises(AuthenticationError, match="Invalid JWT"):
            validate_jwt(token, "other-secret")

    def test_expired(self):
        token = make_jwt(uuid4(), SECRET, expires_in=timedelta(seconds=-10))

        with pytest.raises(AuthenticationError, match="Invalid JWT"):
            validate_jwt(token, SECRET)

    def test_wrong_issuer(self):
        token = make_jwt(uuid4(), SECRET, issuer="someone-else")

        with pytest.raises(AuthenticationError, match="Invalid JWT"):
            validate_jwt(token, SECRET)

    def test_garbage_token(self):
        with pytest.raises(AuthenticationError):
            validate_jwt("not-a-jwt", SECRET)

    def test_subject_must_be_uuid(self):
        token = jwt.encode(
            {"iss": "reelstore", "sub": "alice", "exp": 4102444800},
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(AuthenticationError, match="Invalid user ID"):
            validate_jwt(token, SECRET)
