"""Tests for CredentialVerifier: RS256 signature, issuer/audience binding, required claims."""
import time
from types import SimpleNamespace
from unittest.mock import MagicMock

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from portrait_studio.core.errors import InvalidCredential
from portrait_studio.services.auth.jwt import Claims, CredentialVerifier, get_current_user, get_optional_user

PROJECT = "portrait-test"
ISSUER = f"https://securetoken.google.com/{PROJECT}"

PRIVATE_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)
OTHER_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)


class FakeJwkClient:
    def __init__(self, key):
        self.key = key

    def get_signing_key_from_jwt(self, token):
        return SimpleNamespace(key=self.key)


def _token(key=PRIVATE_KEY, algorithm="RS256", **overrides):
    now = int(time.time())
    payload = {
        "sub": "uid-123",
        "email": "ada@example.com",
        "name": "Ada",
        "iss": ISSUER,
        "aud": PROJECT,
        "iat": now,
        "exp": now + 3600,
    }
    payload.update(overrides)
    payload = {k: v for k, v in payload.items() if v is not None}
    return jwt.encode(payload, key, algorithm=algorithm)


@pytest.fixture
def verifier():
    return CredentialVerifier(FakeJwkClient(PRIVATE_KEY.public_key()), project_id=PROJECT, issuer=ISSUER)


class TestVerify:
    def test_valid_token_returns_claims(self, verifier):
        claims = verifier.verify(_token())
        assert claims == Claims(sub="uid-123", email="ada@example.com", name="Ada")

    def test_expired_token_rejected(self, verifier):
        now = int(time.time())
        with pytest.raises(InvalidCredential):
            verifier.verify(_token(iat=now - 7200, exp=now - 3600))

    def test_wrong_audience_rejected(self, verifier):
        with pytest.raises(InvalidCredential):
            verifier.verify(_token(aud="someone-else"))

    def test_wrong_issuer_rejected(self, verifier):
        with pytest.raises(InvalidCredential):
            verifier.verify(_token(iss="https://securetoken.google.com/other"))

    def test_signed_by_untrusted_key_rejected(self, verifier):
        with pytest.raises(InvalidCredential):
            verifier.verify(_token(key=OTHER_KEY))

    def test_missing_sub_rejected(self, verifier):
        with pytest.raises(InvalidCredential):
            verifier.verify(_token(sub=None))

    def test_malformed_token_rejected(self, verifier):
        with pytest.raises(InvalidCredential):
            verifier.verify("not-a-jwt")

    def test_empty_token_rejected(self, verifier):
        with pytest.raises(InvalidCredential):
            verifier.verify("")

    def test_jwks_failure_is_invalid_credential(self):
        jwk_client = MagicMock()
        jwk_client.get_signing_key_from_jwt.side_effect = jwt.PyJWKClientError("jwks unreachable")
        verifier = CredentialVerifier(jwk_client, project_id=PROJECT, issuer=ISSUER)
        with pytest.raises(InvalidCredential):
            verifier.verify(_token())


class TestRequestDependencies:
    def _request(self, header=None):
        request = MagicMock()
        request.headers = {"Authorization": header} if header else {}
        return request

    def test_missing_header_raises(self):
        with pytest.raises(InvalidCredential):
            get_current_user(self._request())

    def test_non_bearer_header_raises(self):
        with pytest.raises(InvalidCredential):
            get_current_user(self._request("Basic abc"))

    def test_optional_user_is_none_for_anonymous(self):
        assert get_optional_user(self._request()) is None

    def test_optional_user_is_none_for_bad_token(self, monkeypatch):
        def _reject(token):
            raise InvalidCredential("Invalid token")

        monkeypatch.setattr("portrait_studio.services.auth.jwt.verify_token", _reject)
        assert get_optional_user(self._request("Bearer junk")) is None
