"""
The user store: every user-related storage capability, on one object.

:class:`.UserStore` translates each operation into calls on the repositories
of a :class:`.UnitOfWork`. Operations fall into three groups:

- Property accessors (``get_email``, ``set_phone_number``, ...) read or mutate
  the :class:`.IdentityUser` passed in, and never touch the database. Changes
  made with setters are persisted by a later call to :meth:`.UserStore.update`.
- Direct-persistence operations (logins, role memberships, claims, tokens)
  write through immediately, and commit before returning.
- Lifecycle operations (:meth:`.UserStore.create`, :meth:`.UserStore.update`,
  :meth:`.UserStore.delete`) commit immediately and report the outcome as an
  :class:`.IdentityResult` instead of raising.

Every method accepts an optional ``cancellation`` event. It is checked once,
before anything else is done.
"""

import logging
from datetime import datetime
from typing import Iterable, Iterator, List, Optional

from ..domain import Claim, IdentityResult, IdentityUser, UserLoginInfo
from ..persistence.entities import UserClaim, UserLogin, UserLoginKey, \
    UserToken, UserTokenKey
from ..persistence.unit_of_work import UnitOfWork
from .util import Cancellation, check_cancelled, identify, \
    parse_identifier, require, require_text, to_identity_user, to_user_entity

logger = logging.getLogger(__name__)


class UserStore(object):
    """Persists :class:`.IdentityUser` principals and their satellites."""

    def __init__(self, unit_of_work: UnitOfWork) -> None:
        self._unit_of_work = unit_of_work

    # Queryable.

    @property
    def users(self) -> Iterator[IdentityUser]:
        """
        All users, translated lazily as the iterator is consumed.

        The whole table is read; filter the result in Python.
        """
        return (to_identity_user(entity)
                for entity in self._unit_of_work.users.all())

    # Lifecycle.

    def create(self, user: IdentityUser, *,
               cancellation: Cancellation = None) -> IdentityResult:
        """
        Persist a new user.

        Parameters
        ----------
        user : :class:`.IdentityUser`
        cancellation : :class:`threading.Event` or None

        Returns
        -------
        :class:`.IdentityResult`
            Failed (rather than raising) if ``user`` could not be persisted,
            e.g. because a user with the same id or user name exists.

        """
        check_cancelled(cancellation)
        try:
            require(user, 'user')
            with self._unit_of_work.transaction() as uow:
                uow.users.add(to_user_entity(user))
        except Exception as e:
            logger.warning('Could not create user: %s', e)
            return IdentityResult.from_exception(e)
        return IdentityResult.success()

    def update(self, user: IdentityUser, *,
               cancellation: Cancellation = None) -> IdentityResult:
        """
        Persist every field of an existing user.

        Updating a user that does not exist affects nothing, and succeeds.
        """
        check_cancelled(cancellation)
        try:
            require(user, 'user')
            with self._unit_of_work.transaction() as uow:
                uow.users.update(to_user_entity(user))
        except Exception as e:
            logger.warning('Could not update user: %s', e)
            return IdentityResult.from_exception(e)
        return IdentityResult.success()

    def delete(self, user: IdentityUser, *,
               cancellation: Cancellation = None) -> IdentityResult:
        """Delete a user."""
        check_cancelled(cancellation)
        try:
            user_id = identify(user, 'user')
            with self._unit_of_work.transaction() as uow:
                uow.users.remove(user_id)
        except Exception as e:
            logger.warning('Could not delete user: %s', e)
            return IdentityResult.from_exception(e)
        return IdentityResult.success()

    def find_by_id(self, user_id: str, *,
                   cancellation: Cancellation = None) -> Optional[IdentityUser]:
        """
        Load a user by id.

        Parameters
        ----------
        user_id : str
            Must be a UUID.

        Returns
        -------
        :class:`.IdentityUser` or None
            None if no user has this id.

        Raises
        ------
        :class:`.MalformedIdentifier`
            If ``user_id`` is not a UUID.

        """
        check_cancelled(cancellation)
        key = parse_identifier(user_id, 'user_id')
        return to_identity_user(self._unit_of_work.users.find(key))

    def find_by_name(self, normalized_user_name: str, *,
                     cancellation: Cancellation = None
                     ) -> Optional[IdentityUser]:
        """Load a user by normalized user name."""
        check_cancelled(cancellation)
        require_text(normalized_user_name, 'normalized_user_name')
        entity = self._unit_of_work.users.find_by_normalized_user_name(
            normalized_user_name
        )
        return to_identity_user(entity)

    def get_user_id(self, user: IdentityUser, *,
                    cancellation: Cancellation = None) -> str:
        check_cancelled(cancellation)
        require(user, 'user')
        return user.id

    def get_user_name(self, user: IdentityUser, *,
                      cancellation: Cancellation = None) -> Optional[str]:
        check_cancelled(cancellation)
        require(user, 'user')
        return user.user_name

    def set_user_name(self, user: IdentityUser, user_name: Optional[str], *,
                      cancellation: Cancellation = None) -> None:
        check_cancelled(cancellation)
        require(user, 'user')
        user.user_name = user_name

    def get_normalized_user_name(self, user: IdentityUser, *,
                                 cancellation: Cancellation = None
                                 ) -> Optional[str]:
        check_cancelled(cancellation)
        require(user, 'user')
        return user.normalized_user_name

    def set_normalized_user_name(self, user: IdentityUser,
                                 normalized_name: Optional[str], *,
                                 cancellation: Cancellation = None) -> None:
        check_cancelled(cancellation)
        require(user, 'user')
        user.normalized_user_name = normalized_name

    # Password.

    def set_password_hash(self, user: IdentityUser,
                          password_hash: Optional[str], *,
                          cancellation: Cancellation = None) -> None:
        check_cancelled(cancellation)
        require(user, 'user')
        user.password_hash = password_hash

    def get_password_hash(self, user: IdentityUser, *,
                          cancellation: Cancellation = None) -> Optional[str]:
        check_cancelled(cancellation)
        require(user, 'user')
        return user.password_hash

    def has_password(self, user: IdentityUser, *,
                     cancellation: Cancellation = None) -> bool:
        """True if the user has a (non-blank) password hash."""
        check_cancelled(cancellation)
        require(user, 'user')
        return bool(user.password_hash and user.password_hash.strip())

    # Email.

    def set_email(self, user: IdentityUser, email: Optional[str], *,
                  cancellation: Cancellation = None) -> None:
        check_cancelled(cancellation)
        require(user, 'user')
        user.email = email

    def get_email(self, user: IdentityUser, *,
                  cancellation: Cancellation = None) -> Optional[str]:
        check_cancelled(cancellation)
        require(user, 'user')
        return user.email

    def get_email_confirmed(self, user: IdentityUser, *,
                            cancellation: Cancellation = None) -> bool:
        check_cancelled(cancellation)
        require(user, 'user')
        return user.email_confirmed

    def set_email_confirmed(self, user: IdentityUser, confirmed: bool, *,
                            cancellation: Cancellation = None) -> None:
        check_cancelled(cancellation)
        require(user, 'user')
        user.email_confirmed = confirmed

    def find_by_email(self, normalized_email: str, *,
                      cancellation: Cancellation = None
                      ) -> Optional[IdentityUser]:
        """Load a user by normalized e-mail address."""
        check_cancelled(cancellation)
        require_text(normalized_email, 'normalized_email')
        entity = self._unit_of_work.users.find_by_normalized_email(
            normalized_email
        )
        return to_identity_user(entity)

    def get_normalized_email(self, user: IdentityUser, *,
                             cancellation: Cancellation = None
                             ) -> Optional[str]:
        check_cancelled(cancellation)
        require(user, 'user')
        return user.normalized_email

    def set_normalized_email(self, user: IdentityUser,
                             normalized_email: Optional[str], *,
                             cancellation: Cancellation = None) -> None:
        check_cancelled(cancellation)
        require(user, 'user')
        user.normalized_email = normalized_email

    # Logins.

    def add_login(self, user: IdentityUser, login: UserLoginInfo, *,
                  cancellation: Cancellation = None) -> None:
        """Bind an external login to ``user``."""
        check_cancelled(cancellation)
        user_id = identify(user, 'user')
        require(login, 'login')
        require_text(login.login_provider, 'login.login_provider')
        require_text(login.provider_key, 'login.provider_key')
        with self._unit_of_work.transaction() as uow:
            uow.user_logins.add(UserLogin(
                login_provider=login.login_provider,
                provider_key=login.provider_key,
                provider_display_name=login.provider_display_name,
                user_id=user_id
            ))

    def remove_login(self, user: IdentityUser, login_provider: str,
                     provider_key: str, *,
                     cancellation: Cancellation = None) -> None:
        """Unbind an external login."""
        check_cancelled(cancellation)
        require(user, 'user')
        require_text(login_provider, 'login_provider')
        require_text(provider_key, 'provider_key')
        with self._unit_of_work.transaction() as uow:
            uow.user_logins.remove(UserLoginKey(login_provider, provider_key))

    def get_logins(self, user: IdentityUser, *,
                   cancellation: Cancellation = None) -> List[UserLoginInfo]:
        check_cancelled(cancellation)
        user_id = identify(user, 'user')
        return [
            UserLoginInfo(login.login_provider, login.provider_key,
                          login.provider_display_name)
            for login
            in self._unit_of_work.user_logins.find_by_user_id(user_id)
        ]

    def find_by_login(self, login_provider: str, provider_key: str, *,
                      cancellation: Cancellation = None
                      ) -> Optional[IdentityUser]:
        """Load the user to whom an external login is bound."""
        check_cancelled(cancellation)
        require_text(login_provider, 'login_provider')
        require_text(provider_key, 'provider_key')
        login = self._unit_of_work.user_logins.find(
            UserLoginKey(login_provider, provider_key)
        )
        if login is None:
            return None
        return to_identity_user(self._unit_of_work.users.find(login.user_id))

    # Roles.

    def add_to_role(self, user: IdentityUser, role_name: str, *,
                    cancellation: Cancellation = None) -> None:
        """
        Make ``user`` a member of the role named ``role_name``.

        Raises
        ------
        :class:`.NoSuchRole`
            If there is no role with that name.

        """
        check_cancelled(cancellation)
        user_id = identify(user, 'user')
        require_text(role_name, 'role_name')
        with self._unit_of_work.transaction() as uow:
            uow.user_roles.add(user_id, role_name)

    def remove_from_role(self, user: IdentityUser, role_name: str, *,
                         cancellation: Cancellation = None) -> None:
        check_cancelled(cancellation)
        user_id = identify(user, 'user')
        require_text(role_name, 'role_name')
        with self._unit_of_work.transaction() as uow:
            uow.user_roles.remove(user_id, role_name)

    def get_roles(self, user: IdentityUser, *,
                  cancellation: Cancellation = None) -> List[str]:
        """Names of the roles of which ``user`` is a member."""
        check_cancelled(cancellation)
        user_id = identify(user, 'user')
        return self._unit_of_work.user_roles.get_role_names_by_user_id(user_id)

    def is_in_role(self, user: IdentityUser, role_name: str, *,
                   cancellation: Cancellation = None) -> bool:
        check_cancelled(cancellation)
        user_id = identify(user, 'user')
        require_text(role_name, 'role_name')
        role_names = self._unit_of_work.user_roles \
            .get_role_names_by_user_id(user_id)
        return role_name in role_names

    def get_users_in_role(self, role_name: str, *,
                          cancellation: Cancellation = None
                          ) -> List[IdentityUser]:
        check_cancelled(cancellation)
        require_text(role_name, 'role_name')
        return [
            to_identity_user(entity) for entity
            in self._unit_of_work.user_roles.get_users_by_role_name(role_name)
        ]

    # Security stamp.

    def set_security_stamp(self, user: IdentityUser, stamp: Optional[str], *,
                           cancellation: Cancellation = None) -> None:
        check_cancelled(cancellation)
        require(user, 'user')
        user.security_stamp = stamp

    def get_security_stamp(self, user: IdentityUser, *,
                           cancellation: Cancellation = None) -> Optional[str]:
        check_cancelled(cancellation)
        require(user, 'user')
        return user.security_stamp

    # Claims.

    def get_claims(self, user: IdentityUser, *,
                   cancellation: Cancellation = None) -> List[Claim]:
        check_cancelled(cancellation)
        user_id = identify(user, 'user')
        return [
            Claim(entity.claim_type, entity.claim_value) for entity
            in self._unit_of_work.user_claims.get_by_user_id(user_id)
        ]

    def add_claims(self, user: IdentityUser, claims: Iterable[Claim], *,
                   cancellation: Cancellation = None) -> None:
        """
        Attach ``claims`` to ``user``.

        Nothing is written (or committed) if ``claims`` is empty.
        """
        check_cancelled(cancellation)
        user_id = identify(user, 'user')
        require(claims, 'claims')
        claims = list(claims)
        for claim in claims:
            require(claim, 'claim')
            require_text(claim.type, 'claim.type')
        if not claims:
            return
        with self._unit_of_work.transaction() as uow:
            for claim in claims:
                uow.user_claims.add(UserClaim(user_id=user_id,
                                              claim_type=claim.type,
                                              claim_value=claim.value))

    def replace_claim(self, user: IdentityUser, claim: Claim,
                      new_claim: Claim, *,
                      cancellation: Cancellation = None) -> None:
        """
        Replace every claim of ``user`` equal to ``claim`` with ``new_claim``.

        Claims are matched on type and value. If ``user`` has no such claim,
        nothing is written.
        """
        check_cancelled(cancellation)
        user_id = identify(user, 'user')
        require(claim, 'claim')
        require_text(claim.type, 'claim.type')
        require(new_claim, 'new_claim')
        require_text(new_claim.type, 'new_claim.type')
        matches = [
            entity for entity
            in self._unit_of_work.user_claims.get_by_user_id(user_id)
            if entity.claim_type == claim.type
            and entity.claim_value == claim.value
        ]
        if not matches:
            logger.debug('user has no claim %s; nothing to replace',
                         claim.type)
            return
        with self._unit_of_work.transaction() as uow:
            for entity in matches:
                uow.user_claims.update(entity._replace(
                    claim_type=new_claim.type,
                    claim_value=new_claim.value
                ))

    def remove_claims(self, user: IdentityUser, claims: Iterable[Claim], *,
                      cancellation: Cancellation = None) -> None:
        """
        Detach ``claims`` from ``user``.

        Claims that ``user`` does not hold are ignored; if none match, nothing
        is written.
        """
        check_cancelled(cancellation)
        user_id = identify(user, 'user')
        require(claims, 'claims')
        claims = list(claims)
        for claim in claims:
            require(claim, 'claim')
            require_text(claim.type, 'claim.type')
        unwanted = {(claim.type, claim.value) for claim in claims}
        matches = [
            entity for entity
            in self._unit_of_work.user_claims.get_by_user_id(user_id)
            if (entity.claim_type, entity.claim_value) in unwanted
        ]
        if not matches:
            return
        with self._unit_of_work.transaction() as uow:
            for entity in matches:
                uow.user_claims.remove(entity.id)

    def get_users_for_claim(self, claim: Claim, *,
                            cancellation: Cancellation = None
                            ) -> List[IdentityUser]:
        """Load every user that holds ``claim``."""
        check_cancelled(cancellation)
        require(claim, 'claim')
        require_text(claim.type, 'claim.type')
        return [
            to_identity_user(entity) for entity
            in self._unit_of_work.user_claims.get_users_for_claim(claim.type,
                                                                  claim.value)
        ]

    # Authentication tokens.

    def set_token(self, user: IdentityUser, login_provider: str, name: str,
                  value: Optional[str], *,
                  cancellation: Cancellation = None) -> None:
        """Store a token, replacing the value of any existing one."""
        check_cancelled(cancellation)
        user_id = identify(user, 'user')
        require_text(login_provider, 'login_provider')
        require_text(name, 'name')
        key = UserTokenKey(user_id, login_provider, name)
        with self._unit_of_work.transaction() as uow:
            token = uow.user_tokens.find(key)
            if token is None:
                uow.user_tokens.add(UserToken(*key, value=value))
            else:
                uow.user_tokens.update(token._replace(value=value))

    def remove_token(self, user: IdentityUser, login_provider: str, name: str,
                     *, cancellation: Cancellation = None) -> None:
        check_cancelled(cancellation)
        user_id = identify(user, 'user')
        require_text(login_provider, 'login_provider')
        require_text(name, 'name')
        key = UserTokenKey(user_id, login_provider, name)
        if self._unit_of_work.user_tokens.find(key) is None:
            return
        with self._unit_of_work.transaction() as uow:
            uow.user_tokens.remove(key)

    def get_token(self, user: IdentityUser, login_provider: str, name: str, *,
                  cancellation: Cancellation = None) -> Optional[str]:
        """The value of a stored token, or None."""
        check_cancelled(cancellation)
        user_id = identify(user, 'user')
        require_text(login_provider, 'login_provider')
        require_text(name, 'name')
        token = self._unit_of_work.user_tokens.find(
            UserTokenKey(user_id, login_provider, name)
        )
        return token.value if token is not None else None

    # Two-factor authentication.

    def set_two_factor_enabled(self, user: IdentityUser, enabled: bool, *,
                               cancellation: Cancellation = None) -> None:
        check_cancelled(cancellation)
        require(user, 'user')
        user.two_factor_enabled = enabled

    def get_two_factor_enabled(self, user: IdentityUser, *,
                               cancellation: Cancellation = None) -> bool:
        check_cancelled(cancellation)
        require(user, 'user')
        return user.two_factor_enabled

    # Phone number.

    def set_phone_number(self, user: IdentityUser,
                         phone_number: Optional[str], *,
                         cancellation: Cancellation = None) -> None:
        check_cancelled(cancellation)
        require(user, 'user')
        user.phone_number = phone_number

    def get_phone_number(self, user: IdentityUser, *,
                         cancellation: Cancellation = None) -> Optional[str]:
        check_cancelled(cancellation)
        require(user, 'user')
        return user.phone_number

    def get_phone_number_confirmed(self, user: IdentityUser, *,
                                   cancellation: Cancellation = None) -> bool:
        check_cancelled(cancellation)
        require(user, 'user')
        return user.phone_number_confirmed

    def set_phone_number_confirmed(self, user: IdentityUser, confirmed: bool,
                                   *, cancellation: Cancellation = None
                                   ) -> None:
        check_cancelled(cancellation)
        require(user, 'user')
        user.phone_number_confirmed = confirmed

    # Lockout.

    def get_lockout_end_date(self, user: IdentityUser, *,
                             cancellation: Cancellation = None
                             ) -> Optional[datetime]:
        check_cancelled(cancellation)
        require(user, 'user')
        return user.lockout_end

    def set_lockout_end_date(self, user: IdentityUser,
                             lockout_end: Optional[datetime], *,
                             cancellation: Cancellation = None) -> None:
        check_cancelled(cancellation)
        require(user, 'user')
        user.lockout_end = lockout_end

    def increment_access_failed_count(self, user: IdentityUser, *,
                                      cancellation: Cancellation = None
                                      ) -> int:
        """
        Count a failed access attempt.

        Only ``user`` is changed; call :meth:`.update` to persist the count.

        Returns
        -------
        int
            The incremented count.

        """
        check_cancelled(cancellation)
        require(user, 'user')
        user.access_failed_count += 1
        return user.access_failed_count

    def reset_access_failed_count(self, user: IdentityUser, *,
                                  cancellation: Cancellation = None) -> None:
        check_cancelled(cancellation)
        require(user, 'user')
        user.access_failed_count = 0

    def get_access_failed_count(self, user: IdentityUser, *,
                                cancellation: Cancellation = None) -> int:
        check_cancelled(cancellation)
        require(user, 'user')
        return user.access_failed_count

    def get_lockout_enabled(self, user: IdentityUser, *,
                            cancellation: Cancellation = None) -> bool:
        check_cancelled(cancellation)
        require(user, 'user')
        return user.lockout_enabled

    def set_lockout_enabled(self, user: IdentityUser, enabled: bool, *,
                            cancellation: Cancellation = None) -> None:
        check_cancelled(cancellation)
        require(user, 'user')
        user.lockout_enabled = enabled
