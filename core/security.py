"""
Actor identity resolution.

Accounts and sessions are owned by an upstream auth service which mints HS256
JWTs carrying ``user_id`` and ``role`` claims. This module turns such a token
into an immutable Actor; nothing here touches the database.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from core.config import settings
from database.models.users import GlobalRole

logger = logging.getLogger("security.auth")


class AuthenticationError(Exception):
    """Base exception for authentication errors."""
    pass


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired."""
    pass


class TokenInvalidError(AuthenticationError):
    """Raised when JWT token is invalid."""
    pass


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a workflow operation."""

    id: int
    global_role: GlobalRole

    @property
    def is_candidate(self) -> bool:
        return self.global_role == GlobalRole.CANDIDATE


class ActorDirectory:
    """
    Resolves bearer tokens into Actors.

    Signature and expiry are verified; ``user_id`` must be an integer and
    ``role`` one of the GlobalRole values.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
    ):
        self.secret_key = secret_key or settings.jwt_secret_key
        self.algorithm = algorithm or settings.jwt_algorithm

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["user_id", "role"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError(f"Invalid token: {str(e)}")

    def resolve(self, token: str) -> Actor:
        """
        Resolve a bearer token to an Actor.

        Args:
            token: Encoded JWT without the "Bearer " prefix

        Returns:
            Actor built from the token claims

        Raises:
            TokenExpiredError: If the token is past its exp claim
            TokenInvalidError: If the signature or claims are invalid
        """
        payload = self.decode(token)

        try:
            user_id = int(payload["user_id"])
        except (TypeError, ValueError):
            raise TokenInvalidError("Token user_id is not an integer")

        role = payload["role"]
        try:
            global_role = GlobalRole(str(role).lower())
        except ValueError:
            raise TokenInvalidError(f"Unknown role claim: {role}")

        return Actor(id=user_id, global_role=global_role)

    def issue(
        self,
        user_id: int,
        global_role: GlobalRole,
        expires_in: timedelta = timedelta(hours=1),
    ) -> str:
        """
        Mint a token in the upstream format.

        Used by tests and local tooling; production tokens come from the auth
        service.
        """
        now = datetime.now(timezone.utc)
        payload = {
            "user_id": user_id,
            "role": GlobalRole(global_role).value,
            "iat": now,
            "exp": now + expires_in,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)


_actor_directory: Optional[ActorDirectory] = None


def get_actor_directory() -> ActorDirectory:
    """Get or create the ActorDirectory singleton."""
    global _actor_directory
    if _actor_directory is None:
        _actor_directory = ActorDirectory()
    return _actor_directory
