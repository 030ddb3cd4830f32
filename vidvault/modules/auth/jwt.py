"""JWT bearer authentication."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from vidvault.core.config import settings

ALGORITHM = "HS256"
TOKEN_ISSUER = "vidvault-access"


class AuthenticationError(Exception):
    """Raised when a request cannot be tied to a valid principal."""

    pass


class TokenPayload(BaseModel):
    """JWT token payload structure."""

    sub: str  # User ID
    iss: str
    exp: datetime
    iat: datetime


def create_access_token(
    user_id: uuid.UUID,
    secret: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed access token for user_id.

    Args:
        user_id: User UUID
        secret: HS256 signing secret
        expires_delta: Token lifetime (defaults to ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        str: Encoded token
    """
    now = datetime.now(timezone.utc)
    expires_delta = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(user_id),
        "iss": TOKEN_ISSUER,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_token(token: str, secret: str) -> TokenPayload | None:
    """Decode and verify signature, expiry and issuer.

    Returns:
        TokenPayload | None: Decoded payload if valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            issuer=TOKEN_ISSUER,
        )
        return TokenPayload(**payload)
    except (JWTError, ValidationError):
        return None


def validate_token(token: str, secret: str) -> uuid.UUID:
    """Validate a token and return the principal it names.

    Raises:
        AuthenticationError: If the token is invalid, expired, or its
            subject is not a UUID
    """
    payload = decode_token(token, secret)
    if payload is None:
        raise AuthenticationError("Invalid or expired token")

    try:
        return uuid.UUID(payload.sub)
    except ValueError as e:
        raise AuthenticationError("Token subject is not a valid user ID") from e


def get_bearer_token(headers: Mapping[str, str]) -> str:
    """Extract the token from an `Authorization: Bearer <token>` header.

    Raises:
        AuthenticationError: If the header is missing or malformed
    """
    authorization = headers.get("authorization") or headers.get("Authorization")
    if not authorization:
        raise AuthenticationError("Missing authorization header")

    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError("Malformed authorization header")
    return token


# FastAPI dependencies


def get_signing_secret() -> str:
    """Signing secret handed to token validation."""
    return settings.SECRET_KEY


async def get_current_user_id(
    request: Request,
    secret: str = Depends(get_signing_secret),
) -> uuid.UUID:
    """Resolve the authenticated user ID for a request.

    This is a FastAPI dependency that should be used with Depends().

    Raises:
        HTTPException: 401 if the bearer token is missing or invalid
    """
    try:
        token = get_bearer_token(request.headers)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing bearer token: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return validate_token(token, secret)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid JWT: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        )
