"""
Auth utilities for the career progress API.

Validates Clerk JWTs and builds the caller's CareerProfile.
Falls back to the X-User-Id header (plus X-Career-Stage / X-Target-Role)
for service-to-service calls and tests.

Verification:
- CLERK_SECRET_KEY set: symmetric HS256
- otherwise: RS256 against the issuer's JWKS (fetched with httpx, cached)
"""
import json
import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx
import jwt
from fastapi import Header, Request
from jwt.algorithms import RSAAlgorithm

from career_momentum.core.config import settings
from career_momentum.core.errors import UnauthorizedError
from career_momentum.models.progress import CareerProfile

logger = logging.getLogger("career_momentum")

JWKS_TTL_SECONDS = 86400

# JWKS override (tests) and cache keyed by issuer/jwks_url
_jwks_provider_override: Optional[Callable[[str], Dict[str, Any]]] = None
_jwks_cache: Dict[str, Dict[str, Any]] = {}

PROFILE_CLAIMS = ("career_stage", "target_role", "timeline", "primary_goal")


def set_jwks_provider_for_tests(provider: Optional[Callable[[str], Dict[str, Any]]]) -> None:
    """Set or clear JWKS provider override for deterministic testing (no network)."""
    global _jwks_provider_override
    _jwks_provider_override = provider
    _jwks_cache.clear()


def _fetch_jwks(jwks_url: str) -> Dict[str, Any]:
    response = httpx.get(jwks_url, timeout=5.0)
    response.raise_for_status()
    return response.json()


def get_jwks(jwks_url: str) -> Dict[str, Any]:
    cached = _jwks_cache.get(jwks_url)
    if cached and time.time() - cached["fetched_at"] < JWKS_TTL_SECONDS:
        return cached["jwks"]

    fetch = _jwks_provider_override or _fetch_jwks
    jwks = fetch(jwks_url)
    _jwks_cache[jwks_url] = {"jwks": jwks, "fetched_at": time.time()}
    return jwks


def _resolve_jwks_url() -> str:
    if settings.CLERK_JWKS_URL:
        return settings.CLERK_JWKS_URL
    if settings.CLERK_ISSUER:
        return f"{settings.CLERK_ISSUER.rstrip('/')}/.well-known/jwks.json"
    raise jwt.PyJWTError("CLERK_ISSUER or CLERK_JWKS_URL must be configured for RS256 verification")


def verify_jwt_token(token: str) -> Dict[str, Any]:
    """
    Verify a Clerk JWT and return its claims.

    Raises jwt.PyJWTError on an invalid token.
    """
    secret = settings.CLERK_SECRET_KEY
    if secret:
        return jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            options={"verify_signature": True, "verify_exp": True, "verify_aud": False},
        )

    kid = jwt.get_unverified_header(token).get("kid")
    if not kid:
        raise jwt.PyJWTError("Token missing 'kid' in header")

    jwks = get_jwks(_resolve_jwks_url())
    matching_key = next((key for key in jwks.get("keys", []) if key.get("kid") == kid), None)
    if not matching_key:
        raise jwt.PyJWTError(f"Key ID '{kid}' not found in JWKS")

    public_key = RSAAlgorithm.from_jwk(json.dumps(matching_key))
    return jwt.decode(
        token,
        public_key,
        algorithms=["RS256"],
        audience=settings.CLERK_AUDIENCE,
        issuer=settings.CLERK_ISSUER,
        options={
            "verify_signature": True,
            "verify_exp": True,
            "verify_aud": bool(settings.CLERK_AUDIENCE),
            "verify_iss": bool(settings.CLERK_ISSUER),
        },
    )


def profile_from_claims(claims: Dict[str, Any]) -> CareerProfile:
    user_id = claims.get("sub")
    if not user_id:
        raise UnauthorizedError("Token missing 'sub' claim")
    metadata = claims.get("public_metadata")
    metadata = metadata if isinstance(metadata, dict) else {}
    attributes = {
        name: claims.get(name) or metadata.get(name)
        for name in PROFILE_CLAIMS
    }
    return CareerProfile(user_id=user_id, **attributes)


async def get_current_profile(
    request: Request,
    x_user_id: Optional[str] = Header(None),
    x_career_stage: Optional[str] = Header(None),
    x_target_role: Optional[str] = Header(None),
) -> CareerProfile:
    """
    Resolve the caller's identity.

    Priority:
    1. Clerk JWT from Authorization header (invalid token is a hard 401)
    2. X-User-Id header
    3. 401 Unauthorized
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        try:
            claims = verify_jwt_token(auth_header[7:])
        except jwt.ExpiredSignatureError:
            raise UnauthorizedError("Token expired")
        except jwt.PyJWTError as e:
            logger.debug(f"Invalid token: {e}")
            raise UnauthorizedError("Invalid token")
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch Clerk JWKS: {e}")
            raise UnauthorizedError("Token verification failed")
        return profile_from_claims(claims)

    if x_user_id and x_user_id.strip():
        return CareerProfile(
            user_id=x_user_id.strip(),
            career_stage=x_career_stage,
            target_role=x_target_role,
        )

    raise UnauthorizedError("Missing Authorization (Bearer JWT) or X-User-Id header")
