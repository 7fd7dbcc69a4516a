"""
Authorization gate - decides whether an SFTPGo login may proceed.

The gate is responsible for:
- Checking the entity exists and is not locked
- Enforcing an optional required group
- Verifying exactly one credential (public key or password)
- Building the SFTPGo user for an allowed login
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from netauth_client import Entity, IdentityService, IdentityServiceError

from .models import Credentials, SFTPGoUser, home_directory

logger = logging.getLogger(__name__)

KEY_TYPE_SSH = "SSH"
KEY_MODE_READ = "READ"


@dataclass
class Decision:
    """
    Result of an authorization decision.

    Attributes:
        allowed: Whether the login is allowed
        reason: Human-readable reason, for logs only
        user: The SFTPGo user document to emit
    """
    allowed: bool
    reason: str = ""
    user: SFTPGoUser = field(default_factory=SFTPGoUser.denied)

    @classmethod
    def allow(cls, user: SFTPGoUser, reason: str = "Access granted") -> "Decision":
        """Create an allow decision."""
        return cls(allowed=True, reason=reason, user=user)

    @classmethod
    def deny(cls, reason: str = "Access denied") -> "Decision":
        """Create a deny decision carrying the empty user."""
        return cls(allowed=False, reason=reason, user=SFTPGoUser.denied())

    def __bool__(self) -> bool:
        """Allow using the decision directly in conditions."""
        return self.allowed


class AuthorizationGate:
    """
    Runs the login checks against an identity service.

    Checks run in order and stop at the first failure: entity exists and
    is unlocked, entity is in the required group (if any), then either the
    public key or the password is verified. Only one credential is checked
    per call so SFTPGo can try a key first and a password in a later call.

    Any identity-service error denies the login.

    Example:
        gate = AuthorizationGate(client, home_base="/srv/sftp")
        decision = await gate.authorize(Credentials.from_env())
        print(decision.user.to_json())
    """

    def __init__(self, service: IdentityService, home_base: str = ""):
        self.service = service
        self.home_base = home_base

    async def authorize(self, credentials: Credentials) -> Decision:
        """
        Decide on one login attempt.

        Args:
            credentials: The credentials presented by the client

        Returns:
            Decision with the user document to emit
        """
        decision = await self._evaluate(credentials)
        if decision.allowed:
            logger.info("Login allowed for %s: %s", credentials.username, decision.reason)
        else:
            logger.info("Login denied for %s: %s", credentials.username, decision.reason)
        return decision

    async def _evaluate(self, credentials: Credentials) -> Decision:
        username = credentials.username

        try:
            entity = await self.service.entity_info(username)
        except IdentityServiceError as e:
            return Decision.deny(f"Entity lookup failed ({e.status.name})")
        if entity.locked:
            return Decision.deny("Entity is locked")

        if credentials.required_group:
            result = await self._check_group(username, credentials.required_group)
            if not result:
                return result

        if credentials.public_key:
            result = await self._check_public_key(username, credentials.public_key)
        else:
            result = await self._check_password(username, credentials.password)
        if not result:
            return result

        return Decision.allow(self._build_user(username, entity), result.reason)

    async def _check_group(self, username: str, required_group: str) -> Decision:
        """Check the entity is a member of the required group."""
        try:
            groups = await self.service.entity_groups(username)
        except IdentityServiceError as e:
            return Decision.deny(f"Group lookup failed ({e.status.name})")

        names = {group.name for group in groups}
        if required_group not in names:
            return Decision.deny(f"Not a member of {required_group}")
        return Decision(allowed=True, reason=f"Member of {required_group}")

    async def _check_public_key(self, username: str, public_key: str) -> Decision:
        """Check the presented key is one of the entity's SSH keys."""
        try:
            keys = await self.service.entity_keys(username, KEY_MODE_READ, KEY_TYPE_SSH)
        except IdentityServiceError as e:
            return Decision.deny(f"Key lookup failed ({e.status.name})")

        for key in keys.get(KEY_TYPE_SSH, []):
            if key == public_key:
                return Decision(allowed=True, reason="Public key accepted")
        return Decision.deny("Public key not recognized")

    async def _check_password(self, username: str, password: Optional[str]) -> Decision:
        """Verify the password with the identity service."""
        try:
            await self.service.auth_entity(username, password or "")
        except IdentityServiceError as e:
            return Decision.deny(f"Password rejected ({e.status.name})")
        return Decision(allowed=True, reason="Password accepted")

    def _build_user(self, username: str, entity: Entity) -> SFTPGoUser:
        return SFTPGoUser.allowed(
            username=username,
            uid=entity.number,
            home_dir=home_directory(self.home_base, username),
        )
