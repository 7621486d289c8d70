"""HS256 bearer tokens for API authentication."""

import base64
import hashlib
import hmac
import json
import logging
import time
from typing import Optional

from ..models.user import TokenPayload

logger = logging.getLogger(__name__)

TOKEN_EXPIRY_SECONDS = 7 * 24 * 60 * 60


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(text + padding)


def _sign(signing_input: str, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), signing_input.encode("ascii"), hashlib.sha256).digest()
    return _b64encode(digest)


def create_token(user_id: int, secret: str,
                 expiry_seconds: int = TOKEN_EXPIRY_SECONDS,
                 now: Optional[int] = None) -> str:
    """Issue a signed token for a user.

    Args:
        user_id: Account the token authenticates
        secret: HMAC signing secret
        expiry_seconds: Lifetime of the token
        now: Issue time as a unix timestamp (defaults to the current time)

    Returns:
        Compact ``header.payload.signature`` token
    """
    issued_at = int(time.time()) if now is None else now
    header = _b64encode(json.dumps({"alg": "HS256", "typ": "JWT"}, separators=(",", ":")).encode("utf-8"))
    body = _b64encode(json.dumps({
        "userId": user_id,
        "iat": issued_at,
        "exp": issued_at + expiry_seconds,
    }, separators=(",", ":")).encode("utf-8"))
    return f"{header}.{body}.{_sign(f'{header}.{body}', secret)}"


def verify_token(token: str, secret: str, now: Optional[int] = None) -> Optional[TokenPayload]:
    """Check a token's signature and decode its claims.

    Returns:
        TokenPayload with ``expired`` set when past its expiry, or None when the
        token is malformed or the signature does not match.
    """
    parts = token.split(".") if token else []
    if len(parts) != 3:
        return None

    header, body, signature = parts
    if not hmac.compare_digest(signature, _sign(f"{header}.{body}", secret)):
        logger.debug("Token signature mismatch")
        return None

    try:
        claims = json.loads(_b64decode(body))
        user_id = int(claims["userId"])
        issued_at = int(claims["iat"])
        expires_at = int(claims["exp"])
    except (ValueError, KeyError, TypeError) as e:
        logger.debug(f"Malformed token payload: {e}")
        return None

    current = int(time.time()) if now is None else now
    return TokenPayload(
        user_id=user_id,
        issued_at=issued_at,
        expires_at=expires_at,
        expired=expires_at < current,
    )


def extract_bearer_token(auth_header: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header[len("Bearer "):] or None
