"""
verify.py
---------
Purpose:
    JWT verification using Supabase JWKS (ES256).

Notes:
    - Fetches JWKS from Supabase and caches keys.
    - `auth_dependency` returns the raw claims for protected routes.
    - `current_user` turns the claims into an explicit AuthContext.
    - `function_auth_dependency` guards the send-notification function, which
      also accepts the service role key (server-to-server calls).
"""

import hmac

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from app.config import settings
from app.models.domain.auth_domain import AuthContext

SUPABASE_AUDIENCE = "authenticated"
SERVICE_ROLE = "service_role"

_jwk_client = PyJWKClient(settings.jwks_url())
_security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_jwt(token: str) -> dict:
    try:
        signing_key = _jwk_client.get_signing_key_from_jwt(token)
        decoded = jwt.decode(
            token,
            signing_key.key,
            algorithms=["ES256"],
            audience=SUPABASE_AUDIENCE,
            options={"verify_exp": True},
        )
        return decoded
    except jwt.PyJWTError as e:
        raise _unauthorized(f"Invalid authentication token: {e}") from e


def auth_dependency(credentials: HTTPAuthorizationCredentials = Depends(_security)) -> dict:
    token = credentials.credentials
    claims = verify_jwt(token)
    claims.setdefault("access_token", token)
    return claims


def context_from_claims(claims: dict) -> AuthContext:
    user_id = claims.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token: missing user ID")

    return AuthContext(
        user_id=user_id,
        email=claims.get("email"),
        role=claims.get("role", "authenticated"),
        access_token=claims.get("access_token"),
    )


def current_user(claims: dict = Depends(auth_dependency)) -> AuthContext:
    return context_from_claims(claims)


def is_service_key(token: str) -> bool:
    return hmac.compare_digest(token.encode(), settings.SUPABASE_SERVICE_ROLE_KEY.encode())


def function_auth_dependency(
    credentials: HTTPAuthorizationCredentials = Depends(_security),
) -> AuthContext:
    """Accept either the service role key or a valid user JWT."""
    token = credentials.credentials
    if is_service_key(token):
        return AuthContext(user_id=SERVICE_ROLE, role=SERVICE_ROLE, is_service=True)

    claims = verify_jwt(token)
    claims["access_token"] = token
    return context_from_claims(claims)
