"""
Supabase JWT authentication

Bearer tokens are verified against the project's JWKS (ES256 or RS256).
The caller's id is the `sub` claim and their email the `email` claim.
"""
import logging
import os
import time
from typing import Any, Dict, Optional

import httpx
from fastapi import Header, HTTPException
from jose import jwk, jwt

from app.models.user import User

logger = logging.getLogger(__name__)

JWKS_CACHE_DURATION = 60 * 60  # seconds
JWT_AUDIENCE = "authenticated"
JWT_ALGORITHMS = ["ES256", "RS256"]


def get_supabase_url() -> str:
    url = os.getenv("SUPABASE_URL")
    if not url:
        raise ValueError("SUPABASE_URL must be set")
    return url.rstrip("/")


class JWKSCache:
    """Public signing keys, refreshed at most once per JWKS_CACHE_DURATION"""

    def __init__(self, ttl: float = JWKS_CACHE_DURATION):
        self._ttl = ttl
        self._keys: Optional[Dict[str, Any]] = None
        self._fetched_at = 0.0

    async def get(self) -> Dict[str, Any]:
        now = time.time()
        if self._keys and (now - self._fetched_at) < self._ttl:
            return self._keys

        url = f"{get_supabase_url()}/auth/v1/.well-known/jwks.json"
        logger.info(f"Fetching JWKS from {url}")
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(url, timeout=10.0)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch JWKS: {e}")
            if self._keys:
                logger.warning("Using expired JWKS after fetch failure")
                return self._keys
            raise HTTPException(status_code=500, detail="Failed to fetch authentication keys")

        self._keys = response.json()
        self._fetched_at = now
        return self._keys


_jwks = JWKSCache()


async def verify_token(token: str) -> Dict[str, Any]:
    """
    Verify a Supabase access token and return its claims

    Raises HTTPException(401) when the token is invalid or expired.
    """
    try:
        keys = await _jwks.get()
        header = jwt.get_unverified_header(token)
        kid = header.get("kid")
        if not kid:
            raise HTTPException(status_code=401, detail="Token missing key ID (kid)")

        key_data = next((k for k in keys.get("keys", []) if k.get("kid") == kid), None)
        if key_data is None:
            raise HTTPException(status_code=401, detail=f"Key with ID '{kid}' not found in JWKS")

        return jwt.decode(
            token,
            jwk.construct(key_data),
            algorithms=JWT_ALGORITHMS,
            audience=JWT_AUDIENCE,
            issuer=f"{get_supabase_url()}/auth/v1",
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired")
    except jwt.JWTClaimsError as e:
        raise HTTPException(status_code=401, detail=f"Token validation failed: {e}")
    except jwt.JWTError as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {e}")


def user_from_claims(claims: Dict[str, Any]) -> User:
    """Caller identity from verified claims"""
    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token: no user ID")
    metadata = claims.get("user_metadata") or {}
    return User(
        id=user_id,
        email=(claims.get("email") or "").lower(),
        display_name=metadata.get("full_name") or metadata.get("name"),
        photo_url=metadata.get("avatar_url"),
    )


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header missing")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(
            status_code=401,
            detail="Invalid authorization header format. Expected 'Bearer <token>'",
        )
    return token


async def get_current_user(authorization: Optional[str] = Header(None)) -> User:
    """FastAPI dependency: the authenticated caller"""
    claims = await verify_token(_bearer_token(authorization))
    return user_from_claims(claims)
