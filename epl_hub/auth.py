"""Account registration and login."""

from datetime import timedelta
from typing import Optional

from .security import create_token, hash_password, verify_password
from .stores import UserStore
from .logging import get_logger

logger = get_logger(__name__)


class AuthError(Exception):
    """Registration or login was rejected. The message is safe to show users."""


class AuthService:
    """
    Registers users and issues session tokens.

    Usage:
        auth = AuthService(UserStore(), Config.JWT_SECRET)
        user = auth.register("Ada", "ada@example.com", "s3cret")
        token, user = auth.login("ada@example.com", "s3cret")
    """

    def __init__(self, users: UserStore, secret: str, token_ttl: timedelta = timedelta(hours=24)):
        self.users = users
        self.secret = secret
        self.token_ttl = token_ttl

    def register(self, name: str, email: str, password: str, favorite_team_id: Optional[int] = None) -> dict:
        """Create a user account. ``favorite_team_id`` must name an existing team."""
        name = (name or "").strip()
        email = (email or "").strip().lower()
        if not name or not email or not password:
            raise AuthError("missing fields")
        if self.users.get_by_email(email):
            raise AuthError("email already registered")

        try:
            user = self.users.create(name, email, hash_password(password), favorite_team_id=favorite_team_id)
        except ValueError as e:
            # Lost a race with a concurrent registration for the same email
            raise AuthError("email already registered") from e

        logger.info("Registered user %s (id=%s)", email, user["id"])
        return UserStore.public(user)

    def login(self, email: str, password: str) -> tuple[str, dict]:
        user = self.users.get_by_email((email or "").strip().lower())
        if not user or not verify_password(password or "", user["password_hash"]):
            raise AuthError("invalid credentials")
        token = create_token(self.secret, user["id"], user["role"], self.token_ttl)
        return token, UserStore.public(user)
