"""
Password hashing and stateless session tokens.

Tokens are HS256 JWTs carrying only the user id; validity is proven by
signature and expiry, never by a store lookup.
"""

from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from jwt import ExpiredSignatureError, InvalidTokenError

from ..utils.exceptions import AuthError

DEFAULT_BCRYPT_ROUNDS = 10
DEFAULT_TOKEN_EXPIRY_HOURS = 72


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """Hash a password using bcrypt"""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash"""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash
        return False


def create_access_token(
    user_id: str,
    secret: str,
    expiry_hours: int = DEFAULT_TOKEN_EXPIRY_HOURS,
    algorithm: str = "HS256",
) -> str:
    """Return a signed JWT bound to user_id"""
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "iat": now,
        "exp": now + timedelta(hours=expiry_hours),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, algorithm: str = "HS256") -> str:
    """Verify a JWT and return the user id it carries"""
    if not token:
        raise AuthError("Access token is required")
    try:
        claims = jwt.decode(token, secret, algorithms=[algorithm])
    except ExpiredSignatureError:
        raise AuthError("Token has expired")
    except InvalidTokenError:
        raise AuthError("Token is invalid")

    user_id = claims.get("userId")
    if not user_id:
        raise AuthError("Token is invalid")
    return user_id
