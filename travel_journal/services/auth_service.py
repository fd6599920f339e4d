"""Account registration, login and session-token verification"""

from typing import Optional, Tuple

from ..auth.user_auth import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from ..models.user import User
from ..utils.config import AuthSettings
from ..utils.exceptions import AuthError, InvalidCredentialsError, NotFoundError, ValidationError
from ..utils.logger import get_logger
from .user_store import UserStore

logger = get_logger(__name__)


class AuthService:
    def __init__(self, user_store: UserStore, settings: Optional[AuthSettings] = None):
        self.user_store = user_store
        self.settings = settings or AuthSettings()

    def issue_token(self, user_id: str) -> str:
        return create_access_token(
            user_id,
            self.settings.access_token_secret,
            expiry_hours=self.settings.access_token_expiry_hours,
            algorithm=self.settings.algorithm,
        )

    def register(self, full_name: str, email: str, password: str) -> Tuple[User, str]:
        """
        Create an account and return it together with a fresh access token.

        The email is lowercased before the uniqueness check and storage.
        """
        if not full_name or not email or not password:
            raise ValidationError("All fields are required")

        user = User(
            full_name=full_name,
            email=email.lower(),
            password_hash=hash_password(password, rounds=self.settings.bcrypt_rounds),
        )
        self.user_store.create_user(user)
        logger.info("Account registered", user_id=user.id)
        return user, self.issue_token(user.id)

    def login(self, email: str, password: str) -> Tuple[User, str]:
        """
        Check credentials and return the user with a fresh access token.

        The lookup uses the email as typed unless normalize_login_email is
        enabled, so accounts registered with mixed case need the stored
        (lowercase) form by default.
        """
        if not email or not password:
            raise ValidationError("Email and Password are required")

        lookup = email.lower() if self.settings.normalize_login_email else email
        user = self.user_store.find_by_email(lookup)
        if not user:
            logger.info("Login for unknown email")
            raise NotFoundError("User not found")

        if not verify_password(password, user.password_hash):
            logger.warning("Login with invalid password", user_id=user.id)
            raise InvalidCredentialsError("Invalid Credentials")

        return user, self.issue_token(user.id)

    def verify_token(self, token: str) -> str:
        """Return the user id carried by a valid token"""
        return decode_access_token(
            token, self.settings.access_token_secret, algorithm=self.settings.algorithm
        )

    def get_user(self, user_id: str) -> User:
        user = self.user_store.find_by_id(user_id)
        if not user:
            raise AuthError("User not found")
        return user
