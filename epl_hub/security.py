"""Password hashing and JWT helpers."""

from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

ALGORITHM = "HS256"

# bcrypt ignores (newer releases reject) anything past 72 bytes
_MAX_PASSWORD_BYTES = 72


class TokenError(Exception):
    """Token missing, malformed, expired or signed with another secret."""


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_MAX_PASSWORD_BYTES]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("ascii"))
    except ValueError:
        # Not a bcrypt hash
        return False


def create_token(secret: str, user_id: int, role: str, ttl: timedelta) -> str:
    """Sign a session token carrying the user id and role."""
    now = datetime.now(timezone.utc)
    claims = {
        "uid": user_id,
        "role": role,
        "sub": "auth",
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def decode_token(secret: str, token: str) -> dict:
    """
    Validate a token and return its claims.

    Raises:
        TokenError: if the signature, expiry or claims are invalid
    """
    try:
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError as e:
        raise TokenError(str(e)) from e
    if "uid" not in claims or "role" not in claims:
        raise TokenError("token is missing uid/role claims")
    return claims
