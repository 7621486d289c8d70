"""Password hashing and bearer tokens."""

from .passwords import hash_password, verify_password
from .tokens import create_token, verify_token, extract_bearer_token, TOKEN_EXPIRY_SECONDS

__all__ = [
    "hash_password",
    "verify_password",
    "create_token",
    "verify_token",
    "extract_bearer_token",
    "TOKEN_EXPIRY_SECONDS",
]
