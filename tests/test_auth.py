"""Tests for JWT helpers and the current-user dependency."""

from datetime import timedelta

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from blockplanner.auth.dependencies import get_current_user
from blockplanner.auth.jwt import create_access_token, decode_access_token, get_user_id_from_token


class TestJwt:
    def test_round_trip_subject(self):
        token = create_access_token("test-user-123")
        assert get_user_id_from_token(token) == "test-user-123"

    def test_expired_token_rejected(self):
        token = create_access_token("test-user-123", expires_in=timedelta(seconds=-1))
        assert decode_access_token(token) is None
        assert get_user_id_from_token(token) is None

    def test_garbage_token_rejected(self):
        assert decode_access_token("not.a.token") is None


class TestGetCurrentUser:
    def _creds(self, token):
        return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)

    def test_resolves_user(self, db_session, test_user_id):
        user = get_current_user(self._creds(create_access_token(test_user_id)), db_session)
        assert user.id == test_user_id

    def test_missing_credentials(self, db_session):
        with pytest.raises(HTTPException) as exc:
            get_current_user(None, db_session)
        assert exc.value.status_code == 401

    def test_unknown_user(self, db_session):
        with pytest.raises(HTTPException) as exc:
            get_current_user(self._creds(create_access_token("ghost")), db_session)
        assert exc.value.detail == "User not found"
