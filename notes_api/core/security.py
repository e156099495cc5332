from typing import Optional

from fastapi import Depends, Header, Request

from notes_api.core.exceptions import AuthenticationError
from notes_api.schemas.auth import AuthenticatedUser
from notes_api.services.blob_store import BlobStore
from notes_api.services.identity import IdentityVerifier

MISSING_TOKEN = "Acceso no autorizado: No se proporcionó token."


def get_identity_verifier(request: Request) -> IdentityVerifier:
    return request.app.state.identity_verifier


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def bearer_token(authorization: Optional[str]) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header"""
    if not authorization:
        raise AuthenticationError(MISSING_TOKEN)
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme != "Bearer" or not token:
        raise AuthenticationError(MISSING_TOKEN)
    return token


async def get_current_user(
    authorization: Optional[str] = Header(None),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> AuthenticatedUser:
    """Resolve the caller; every owner filter downstream uses the returned id"""
    token = bearer_token(authorization)
    return await verifier.verify(token)
