"""Argument checks and principal/entity translation shared by the stores."""

import threading
import uuid
from typing import Any, Optional, Union

from ..domain import IdentityRole, IdentityUser
from ..exceptions import InvalidArgument, MalformedIdentifier, \
    OperationCancelled
from ..persistence.entities import Role, User

Cancellation = Optional[threading.Event]
"""An event that, once set, cancels operations that have not started yet."""


def check_cancelled(cancellation: Cancellation) -> None:
    """Raise :class:`.OperationCancelled` if ``cancellation`` is set."""
    if cancellation is not None and cancellation.is_set():
        raise OperationCancelled('Operation was cancelled')


def require(value: Any, name: str) -> None:
    """Raise :class:`.InvalidArgument` if ``value`` is None."""
    if value is None:
        raise InvalidArgument(f'{name} is required')


def require_text(value: Optional[str], name: str) -> None:
    """Raise :class:`.InvalidArgument` if ``value`` is None or blank."""
    if value is None or not value.strip():
        raise InvalidArgument(f'{name} must not be blank')


def parse_identifier(value: str, name: str) -> str:
    """
    Parse ``value`` as a UUID, and return its canonical string form.

    Raises
    ------
    :class:`.InvalidArgument`
        If ``value`` is blank.
    :class:`.MalformedIdentifier`
        If ``value`` is not a UUID.

    """
    require_text(value, name)
    try:
        return str(uuid.UUID(value))
    except ValueError as e:
        raise MalformedIdentifier(f'{name} is not a valid UUID') from e


def identify(principal: Union[IdentityUser, IdentityRole], name: str) -> str:
    """
    Canonicalize the id of ``principal`` in place, and return it.

    Ids are persisted in the form :func:`.parse_identifier` returns, so a
    principal created with e.g. an uppercase or braced UUID can be found by
    that same id later.
    """
    require(principal, name)
    principal.id = parse_identifier(principal.id, f'{name}.id')
    return principal.id


def to_user_entity(user: IdentityUser) -> User:
    """Translate a principal to the shape persisted in ``users``."""
    identify(user, 'user')
    return User(**{field: getattr(user, field) for field in User._fields})


def to_identity_user(entity: Optional[User]) -> Optional[IdentityUser]:
    """Translate a ``users`` row to a principal."""
    if entity is None:
        return None
    return IdentityUser(**entity._asdict())


def to_role_entity(role: IdentityRole) -> Role:
    """Translate a role principal to the shape persisted in ``roles``."""
    identify(role, 'role')
    return Role(id=role.id, name=role.name)


def to_identity_role(entity: Optional[Role]) -> Optional[IdentityRole]:
    """Translate a ``roles`` row to a role principal."""
    if entity is None:
        return None
    return IdentityRole(id=entity.id, name=entity.name)
