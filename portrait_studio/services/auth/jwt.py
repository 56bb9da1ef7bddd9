"""
Identity Provider credential verification (Firebase ID tokens, RS256).
Tokens are checked against the provider's published JWKS; issuer and audience
are bound to settings.firebase_project_id.
"""
import logging

import jwt
from fastapi import Request
from jwt import PyJWKClient
from pydantic import BaseModel

from portrait_studio.core.config import settings
from portrait_studio.core.errors import InvalidCredential

logger = logging.getLogger(__name__)

ALGORITHMS = ["RS256"]


class Claims(BaseModel):
    model_config = {"frozen": True}

    sub: str
    email: str | None = None
    name: str | None = None


class CredentialVerifier:
    def __init__(self, jwks_client: PyJWKClient, project_id: str, issuer: str) -> None:
        self.jwks_client = jwks_client
        self.project_id = project_id
        self.issuer = issuer

    def verify(self, token: str) -> Claims:
        if not token:
            raise InvalidCredential("Missing token")
        try:
            signing_key = self.jwks_client.get_signing_key_from_jwt(token)
            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=ALGORITHMS,
                audience=self.project_id,
                issuer=self.issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except (jwt.PyJWTError, ValueError) as e:
            logger.info("credential_rejected", extra={"error": str(e)})
            raise InvalidCredential("Invalid token") from e
        if not payload.get("sub"):
            raise InvalidCredential("Invalid token")
        return Claims(sub=payload["sub"], email=payload.get("email"), name=payload.get("name"))


_verifier: CredentialVerifier | None = None


def get_verifier() -> CredentialVerifier:
    global _verifier
    if _verifier is None:
        _verifier = CredentialVerifier(
            PyJWKClient(settings.firebase_jwks_url, cache_keys=True),
            project_id=settings.firebase_project_id,
            issuer=settings.firebase_issuer,
        )
    return _verifier


def verify_token(token: str) -> Claims:
    return get_verifier().verify(token)


def bearer_token(request: Request) -> str | None:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth[7:].strip() or None


def get_current_user(request: Request) -> Claims:
    """FastAPI dependency: verified claims from Authorization: Bearer <token>."""
    token = bearer_token(request)
    if not token:
        raise InvalidCredential("Unauthorized")
    return verify_token(token)


def get_optional_user(request: Request) -> Claims | None:
    """Like get_current_user, but anonymous or invalid callers get None (public routes)."""
    token = bearer_token(request)
    if not token:
        return None
    try:
        return verify_token(token)
    except InvalidCredential:
        return None
