"""
Records of persisted rows.

An entity is a snapshot of one row, built fresh on every read and never
cached. Composite keys are separate records so that repositories can look
rows up (and remove them) without a complete entity in hand.
"""

from datetime import datetime
from typing import NamedTuple, Optional


class User(NamedTuple):
    """A row of ``users``."""

    id: str
    user_name: Optional[str] = None
    normalized_user_name: Optional[str] = None
    email: Optional[str] = None
    normalized_email: Optional[str] = None
    email_confirmed: bool = False
    password_hash: Optional[str] = None
    security_stamp: Optional[str] = None
    concurrency_stamp: Optional[str] = None
    phone_number: Optional[str] = None
    phone_number_confirmed: bool = False
    two_factor_enabled: bool = False
    lockout_end: Optional[datetime] = None
    lockout_enabled: bool = False
    access_failed_count: int = 0


class Role(NamedTuple):
    """A row of ``roles``."""

    id: str
    name: Optional[str] = None


class RoleClaim(NamedTuple):
    """A row of ``role_claims``."""

    role_id: str
    claim_type: str
    claim_value: Optional[str] = None
    id: Optional[int] = None
    """Assigned by the database on insert."""


class UserClaim(NamedTuple):
    """A row of ``user_claims``."""

    user_id: str
    claim_type: str
    claim_value: Optional[str] = None
    id: Optional[int] = None
    """Assigned by the database on insert."""


class UserLoginKey(NamedTuple):
    """Identifies a :class:`.UserLogin`."""

    login_provider: str
    provider_key: str


class UserLogin(NamedTuple):
    """A row of ``user_logins``; binds an external login to one user."""

    login_provider: str
    provider_key: str
    user_id: str
    provider_display_name: Optional[str] = None

    @property
    def key(self) -> UserLoginKey:
        """The composite key of this login."""
        return UserLoginKey(self.login_provider, self.provider_key)


class UserTokenKey(NamedTuple):
    """Identifies a :class:`.UserToken`."""

    user_id: str
    login_provider: str
    name: str


class UserToken(NamedTuple):
    """A row of ``user_tokens``."""

    user_id: str
    login_provider: str
    name: str
    value: Optional[str] = None

    @property
    def key(self) -> UserTokenKey:
        """The composite key of this token."""
        return UserTokenKey(self.user_id, self.login_provider, self.name)
