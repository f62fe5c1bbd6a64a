"""The role store: role lifecycle, and claims attached to roles."""

import logging
from typing import Iterator, List, Optional

from ..domain import Claim, IdentityResult, IdentityRole
from ..persistence.entities import RoleClaim
from ..persistence.unit_of_work import UnitOfWork
from .util import Cancellation, check_cancelled, identify, \
    parse_identifier, require, require_text, to_identity_role, to_role_entity

logger = logging.getLogger(__name__)


class RoleStore(object):
    """
    Persists :class:`.IdentityRole` principals and their claims.

    Follows the same conventions as :class:`.UserStore`: setters only touch
    the principal, claim operations commit immediately, and lifecycle
    operations report failures as an :class:`.IdentityResult`.
    """

    def __init__(self, unit_of_work: UnitOfWork) -> None:
        self._unit_of_work = unit_of_work

    @property
    def roles(self) -> Iterator[IdentityRole]:
        """All roles, translated lazily as the iterator is consumed."""
        return (to_identity_role(entity)
                for entity in self._unit_of_work.roles.all())

    def create(self, role: IdentityRole, *,
               cancellation: Cancellation = None) -> IdentityResult:
        """Persist a new role. Role names must be unique."""
        check_cancelled(cancellation)
        try:
            require(role, 'role')
            require_text(role.name, 'role.name')
            with self._unit_of_work.transaction() as uow:
                uow.roles.add(to_role_entity(role))
        except Exception as e:
            logger.warning('Could not create role: %s', e)
            return IdentityResult.from_exception(e)
        return IdentityResult.success()

    def update(self, role: IdentityRole, *,
               cancellation: Cancellation = None) -> IdentityResult:
        check_cancelled(cancellation)
        try:
            require(role, 'role')
            require_text(role.name, 'role.name')
            with self._unit_of_work.transaction() as uow:
                uow.roles.update(to_role_entity(role))
        except Exception as e:
            logger.warning('Could not update role: %s', e)
            return IdentityResult.from_exception(e)
        return IdentityResult.success()

    def delete(self, role: IdentityRole, *,
               cancellation: Cancellation = None) -> IdentityResult:
        check_cancelled(cancellation)
        try:
            role_id = identify(role, 'role')
            with self._unit_of_work.transaction() as uow:
                uow.roles.remove(role_id)
        except Exception as e:
            logger.warning('Could not delete role: %s', e)
            return IdentityResult.from_exception(e)
        return IdentityResult.success()

    def find_by_id(self, role_id: str, *,
                   cancellation: Cancellation = None) -> Optional[IdentityRole]:
        """
        Load a role by id.

        Raises
        ------
        :class:`.MalformedIdentifier`
            If ``role_id`` is not a UUID.

        """
        check_cancelled(cancellation)
        key = parse_identifier(role_id, 'role_id')
        return to_identity_role(self._unit_of_work.roles.find(key))

    def find_by_name(self, role_name: str, *,
                     cancellation: Cancellation = None
                     ) -> Optional[IdentityRole]:
        check_cancelled(cancellation)
        require_text(role_name, 'role_name')
        return to_identity_role(self._unit_of_work.roles.find_by_name(role_name))

    def get_role_id(self, role: IdentityRole, *,
                    cancellation: Cancellation = None) -> str:
        check_cancelled(cancellation)
        require(role, 'role')
        return role.id

    def get_role_name(self, role: IdentityRole, *,
                      cancellation: Cancellation = None) -> Optional[str]:
        check_cancelled(cancellation)
        require(role, 'role')
        return role.name

    def set_role_name(self, role: IdentityRole, role_name: Optional[str], *,
                      cancellation: Cancellation = None) -> None:
        check_cancelled(cancellation)
        require(role, 'role')
        role.name = role_name

    def get_claims(self, role: IdentityRole, *,
                   cancellation: Cancellation = None) -> List[Claim]:
        check_cancelled(cancellation)
        role_id = identify(role, 'role')
        return [
            Claim(entity.claim_type, entity.claim_value) for entity
            in self._unit_of_work.role_claims.find_by_role_id(role_id)
        ]

    def add_claim(self, role: IdentityRole, claim: Claim, *,
                  cancellation: Cancellation = None) -> None:
        check_cancelled(cancellation)
        role_id = identify(role, 'role')
        require(claim, 'claim')
        require_text(claim.type, 'claim.type')
        with self._unit_of_work.transaction() as uow:
            uow.role_claims.add(RoleClaim(role_id=role_id,
                                          claim_type=claim.type,
                                          claim_value=claim.value))

    def remove_claim(self, role: IdentityRole, claim: Claim, *,
                     cancellation: Cancellation = None) -> None:
        """Detach every claim of ``role`` equal to ``claim``, if any."""
        check_cancelled(cancellation)
        role_id = identify(role, 'role')
        require(claim, 'claim')
        require_text(claim.type, 'claim.type')
        matches = [
            entity for entity
            in self._unit_of_work.role_claims.find_by_role_id(role_id)
            if entity.claim_type == claim.type
            and entity.claim_value == claim.value
        ]
        if not matches:
            return
        with self._unit_of_work.transaction() as uow:
            for entity in matches:
                uow.role_claims.remove(entity.id)
