import asyncio
import logging

from fastapi import Request, HTTPException, status
from jose import jwt, JWTError

from config import SUPABASE_JWT_SECRET, SUPABASE_JWT_AUDIENCE, JWT_ALGORITHM

logger = logging.getLogger(__name__)


def verify_token(token: str, secret: str = SUPABASE_JWT_SECRET) -> dict | None:
    """Decode and verify a Supabase access token. Returns the payload or None on failure."""
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            audience=SUPABASE_JWT_AUDIENCE,
        )
    except JWTError:
        return None


async def lookup_user_id(token: str) -> str | None:
    """Resolve the token through Supabase Auth when no JWT secret is configured locally."""
    from supabase_client import get_user_from_token
    try:
        response = await asyncio.to_thread(get_user_from_token, token)
    except Exception as e:
        logger.warning(f"Supabase auth lookup failed: {e}")
        return None
    user = getattr(response, "user", None)
    return getattr(user, "id", None)


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return None


async def get_current_user(request: Request) -> str:
    """
    FastAPI dependency: extracts the Bearer token from the Authorization
    header, resolves it to a Supabase user, and returns the user id.
    Raises HTTP 401 if the token is missing or invalid.
    """
    token = _bearer_token(request)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if SUPABASE_JWT_SECRET:
        payload = verify_token(token)
        user_id = payload.get("sub") if payload else None
    else:
        user_id = await lookup_user_id(token)

    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return str(user_id)
