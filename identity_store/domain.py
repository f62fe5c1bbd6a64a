"""
Principal-side representations of users, roles, and their satellites.

These are the objects that an application (or an identity framework) hands to
the stores in :mod:`identity_store.stores`. They are deliberately distinct
from the persisted records in :mod:`identity_store.persistence.entities`: a
principal is mutable and may carry changes that have not been persisted yet,
whereas an entity is a snapshot of a row.
"""

import uuid
from datetime import datetime
from typing import NamedTuple, Optional, Tuple

from pydantic import BaseModel, Field


def new_identifier() -> str:
    """Generate a lowercase, hyphenated UUID4 string."""
    return str(uuid.uuid4())


class IdentityUser(BaseModel):
    """A user account, as seen by the application."""

    id: str = Field(default_factory=new_identifier)
    """Opaque identifier; a UUID string."""

    user_name: Optional[str] = None
    """The name the user signs in with."""

    normalized_user_name: Optional[str] = None
    """Case-folded ``user_name``, used for lookups."""

    email: Optional[str] = None
    """E-mail address of the user."""

    normalized_email: Optional[str] = None
    """Case-folded ``email``, used for lookups."""

    email_confirmed: bool = False
    """True if the user has confirmed ``email``."""

    password_hash: Optional[str] = None
    """Salted and hashed representation of the password."""

    security_stamp: Optional[str] = Field(default_factory=new_identifier)
    """Changes whenever the user's credentials change."""

    concurrency_stamp: Optional[str] = Field(default_factory=new_identifier)
    """Changes whenever the user is persisted."""

    phone_number: Optional[str] = None
    """Telephone number of the user."""

    phone_number_confirmed: bool = False
    """True if the user has confirmed ``phone_number``."""

    two_factor_enabled: bool = False
    """True if two-factor authentication is enabled for the user."""

    lockout_end: Optional[datetime] = None
    """End of the current lockout (UTC), if any."""

    lockout_enabled: bool = True
    """True if the user can be locked out."""

    access_failed_count: int = 0
    """Failed sign-in attempts since the last successful one."""


class IdentityRole(BaseModel):
    """A named role that users may be members of."""

    id: str = Field(default_factory=new_identifier)
    """Opaque identifier; a UUID string."""

    name: Optional[str] = None
    """Unique name of the role."""


class Claim(NamedTuple):
    """A statement about a user or role, e.g. ``('department', 'physics')``."""

    type: str
    value: Optional[str] = None


class UserLoginInfo(NamedTuple):
    """An external login (e.g. an OAuth2 provider account) bound to a user."""

    login_provider: str
    """Name of the provider, e.g. ``orcid``."""

    provider_key: str
    """Identifier of the user at the provider."""

    provider_display_name: Optional[str] = None
    """Human-readable name of the provider."""


class IdentityError(NamedTuple):
    """Describes why a store operation failed."""

    code: str
    """Kind of failure; the name of the exception that caused it."""

    description: str
    """Human-readable explanation."""


class IdentityResult(NamedTuple):
    """Outcome of a user or role lifecycle operation."""

    succeeded: bool
    errors: Tuple[IdentityError, ...] = ()

    @classmethod
    def success(cls) -> 'IdentityResult':
        """A successful result."""
        return cls(succeeded=True)

    @classmethod
    def failed(cls, *errors: IdentityError) -> 'IdentityResult':
        """A failed result carrying ``errors``."""
        return cls(succeeded=False, errors=tuple(errors))

    @classmethod
    def from_exception(cls, exc: BaseException) -> 'IdentityResult':
        """Convert an exception into a failed result."""
        return cls.failed(IdentityError(code=type(exc).__name__,
                                        description=str(exc)))


class CommitResult(NamedTuple):
    """Outcome of :meth:`.UnitOfWork.commit`."""

    succeeded: bool
    error: Optional[BaseException] = None

