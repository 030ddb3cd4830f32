"""Authentication module."""

from vidvault.modules.auth.jwt import (
    AuthenticationError,
    TokenPayload,
    create_access_token,
    decode_token,
    get_bearer_token,
    get_current_user_id,
    get_signing_secret,
    validate_token,
)

__all__ = [
    "AuthenticationError",
    "TokenPayload",
    "create_access_token",
    "decode_token",
    "get_bearer_token",
    "get_current_user_id",
    "get_signing_secret",
    "validate_token",
]
