"""Account signup, login and bearer-token authentication."""

import logging
from typing import Optional, Tuple

from ..auth import hash_password, verify_password, create_token, verify_token, extract_bearer_token
from ..auth.tokens import TOKEN_EXPIRY_SECONDS
from ..errors import AuthenticationError, ValidationError
from ..models.user import User
from ..storage.record_store import RecordStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class AuthService:
    """Issues and checks bearer tokens for stored accounts."""

    def __init__(self, store: RecordStore, secret: str, expiry_seconds: int = TOKEN_EXPIRY_SECONDS):
        self.store = store
        self.secret = secret
        self.expiry_seconds = expiry_seconds

    def signup(self, email: str, password: str, name: Optional[str] = None) -> Tuple[User, str]:
        """Create an account and return it with a fresh token.

        Raises:
            ValidationError: If email or password is missing or the password is too short
            DuplicateEmailError: If the email is already registered
        """
        if not email or not password:
            raise ValidationError("Email and password are required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        user = self.store.create_user(email, hash_password(password), name)
        return user, self.issue_token(user.id)

    def login(self, email: str, password: str) -> Tuple[User, str]:
        """Check credentials and return the user with a fresh token."""
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = self.store.get_user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Rejected login attempt")
            raise AuthenticationError("Invalid email or password")

        return user, self.issue_token(user.id)

    def issue_token(self, user_id: int) -> str:
        return create_token(user_id, self.secret, self.expiry_seconds)

    def authenticate(self, auth_header: Optional[str]) -> int:
        """Resolve an Authorization header to a user id.

        Raises:
            AuthenticationError: If the header is missing, malformed, badly
                signed or expired
        """
        if not auth_header:
            raise AuthenticationError("Unauthorized")

        token = extract_bearer_token(auth_header)
        if not token:
            raise AuthenticationError("Invalid token")

        payload = verify_token(token, self.secret)
        if payload is None:
            raise AuthenticationError("Invalid token")
        if payload.expired:
            raise AuthenticationError("Token expired")

        return payload.user_id
