"""
Repository-per-entity access to the identity tables.

Each repository is bound to one :class:`sqlalchemy.engine.Transaction` and
issues exactly one parameterized statement per operation on that
transaction's connection. Repositories hold no state besides the
transaction, so they are cheap to build; :class:`.UnitOfWork` builds a fresh
set every time it begins a transaction.

Absence is not an error: ``find`` returns ``None``, and ``update``/``remove``
on a missing key affect no rows. ``add`` on an existing key lets the driver's
:class:`sqlalchemy.exc.IntegrityError` propagate.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.engine import CursorResult, Transaction
from sqlalchemy.sql.elements import TextClause

from ..exceptions import NoSuchRole, TransactionInactive
from . import util
from .entities import Role, RoleClaim, User, UserClaim, UserLogin, \
    UserLoginKey, UserToken, UserTokenKey

logger = logging.getLogger(__name__)

_USER_KEY = 'id'
_USER_FIELDS = (
    'user_name', 'normalized_user_name', 'email', 'normalized_email',
    'email_confirmed', 'password_hash', 'security_stamp', 'concurrency_stamp',
    'phone_number', 'phone_number_confirmed', 'two_factor_enabled',
    'lockout_end', 'lockout_enabled', 'access_failed_count'
)
_USER_COLUMNS = ', '.join((_USER_KEY,) + _USER_FIELDS)
_USER_COLUMNS_QUALIFIED = ', '.join(f'u.{column}' for column
                                    in (_USER_KEY,) + _USER_FIELDS)


class Repository(object):
    """Base class for repositories bound to a transaction."""

    def __init__(self, transaction: Transaction) -> None:
        self._transaction = transaction

    def _execute(self, statement: Union[str, TextClause],
                 params: Optional[Dict[str, Any]] = None) -> CursorResult:
        if not self._transaction.is_active:
            raise TransactionInactive(f'{type(self).__name__} used after its'
                                      ' transaction ended')
        if isinstance(statement, str):
            statement = text(statement)
        return self._transaction.connection.execute(statement, params or {})

    def _fetchall(self, sql: str, **params: Any) -> List[Mapping[str, Any]]:
        return list(self._execute(sql, params).mappings())

    def _fetchone(self, sql: str, **params: Any) -> Optional[Mapping[str, Any]]:
        return self._execute(sql, params).mappings().first()


def _row_to_user(row: Mapping[str, Any]) -> User:
    return User(
        id=row['id'],
        user_name=row['user_name'],
        normalized_user_name=row['normalized_user_name'],
        email=row['email'],
        normalized_email=row['normalized_email'],
        email_confirmed=bool(row['email_confirmed']),
        password_hash=row['password_hash'],
        security_stamp=row['security_stamp'],
        concurrency_stamp=row['concurrency_stamp'],
        phone_number=row['phone_number'],
        phone_number_confirmed=bool(row['phone_number_confirmed']),
        two_factor_enabled=bool(row['two_factor_enabled']),
        lockout_end=util.as_utc(row['lockout_end']),
        lockout_enabled=bool(row['lockout_enabled']),
        access_failed_count=int(row['access_failed_count'] or 0),
    )


def _user_params(entity: User) -> Dict[str, Any]:
    params = entity._asdict()
    params['lockout_end'] = util.to_utc(entity.lockout_end)
    return params


def _user_statement(sql: str) -> TextClause:
    # Typed so that the driver gets a timestamp it understands.
    return text(sql).bindparams(
        bindparam('lockout_end', type_=DateTime(timezone=True))
    )


class UserRepository(Repository):
    """Access to ``users``."""

    def all(self) -> List[User]:
        rows = self._fetchall(f'SELECT {_USER_COLUMNS} FROM users')
        return [_row_to_user(row) for row in rows]

    def find(self, key: str) -> Optional[User]:
        row = self._fetchone(
            f'SELECT {_USER_COLUMNS} FROM users WHERE id = :id', id=key
        )
        if row is None:
            logger.debug('no user found for id %s', key)
            return None
        return _row_to_user(row)

    def find_by_normalized_user_name(self, normalized_user_name: str
                                     ) -> Optional[User]:
        row = self._fetchone(
            f"""SELECT {_USER_COLUMNS} FROM users
            WHERE normalized_user_name = :normalized_user_name""",
            normalized_user_name=normalized_user_name
        )
        if row is None:
            logger.debug('no user found for name %s', normalized_user_name)
            return None
        return _row_to_user(row)

    def find_by_normalized_email(self, normalized_email: str
                                 ) -> Optional[User]:
        row = self._fetchone(
            f"""SELECT {_USER_COLUMNS} FROM users
            WHERE normalized_email = :normalized_email""",
            normalized_email=normalized_email
        )
        if row is None:
            logger.debug('no user found for email %s', normalized_email)
            return None
        return _row_to_user(row)

    def add(self, entity: User) -> None:
        placeholders = ', '.join(f':{column}' for column
                                 in (_USER_KEY,) + _USER_FIELDS)
        sql = f'INSERT INTO users ({_USER_COLUMNS}) VALUES ({placeholders})'
        self._execute(_user_statement(sql), _user_params(entity))

    def update(self, entity: User) -> None:
        assignments = ', '.join(f'{column} = :{column}'
                                for column in _USER_FIELDS)
        sql = f'UPDATE users SET {assignments} WHERE id = :id'
        self._execute(_user_statement(sql), _user_params(entity))

    def remove(self, key: str) -> None:
        self._execute('DELETE FROM users WHERE id = :id', {'id': key})


class RoleRepository(Repository):
    """Access to ``roles``."""

    def all(self) -> List[Role]:
        return [Role(**row) for row
                in self._fetchall('SELECT id, name FROM roles')]

    def find(self, key: str) -> Optional[Role]:
        row = self._fetchone('SELECT id, name FROM roles WHERE id = :id',
                             id=key)
        return Role(**row) if row is not None else None

    def find_by_name(self, role_name: str) -> Optional[Role]:
        row = self._fetchone(
            'SELECT id, name FROM roles WHERE name = :name', name=role_name
        )
        if row is None:
            logger.debug('no role named %s', role_name)
            return None
        return Role(**row)

    def add(self, entity: Role) -> None:
        self._execute('INSERT INTO roles (id, name) VALUES (:id, :name)',
                      entity._asdict())

    def update(self, entity: Role) -> None:
        self._execute('UPDATE roles SET name = :name WHERE id = :id',
                      entity._asdict())

    def remove(self, key: str) -> None:
        self._execute('DELETE FROM roles WHERE id = :id', {'id': key})


class RoleClaimRepository(Repository):
    """Access to ``role_claims``."""

    _columns = 'id, role_id, claim_type, claim_value'

    def all(self) -> List[RoleClaim]:
        return [RoleClaim(**row) for row
                in self._fetchall(f'SELECT {self._columns} FROM role_claims')]

    def find(self, key: int) -> Optional[RoleClaim]:
        row = self._fetchone(
            f'SELECT {self._columns} FROM role_claims WHERE id = :id', id=key
        )
        return RoleClaim(**row) if row is not None else None

    def find_by_role_id(self, role_id: str) -> List[RoleClaim]:
        rows = self._fetchall(
            f'SELECT {self._columns} FROM role_claims WHERE role_id = :role_id',
            role_id=role_id
        )
        return [RoleClaim(**row) for row in rows]

    def add(self, entity: RoleClaim) -> None:
        self._execute(
            """INSERT INTO role_claims (role_id, claim_type, claim_value)
            VALUES (:role_id, :claim_type, :claim_value)""",
            entity._asdict()
        )

    def update(self, entity: RoleClaim) -> None:
        self._execute(
            """UPDATE role_claims
            SET role_id = :role_id, claim_type = :claim_type,
                claim_value = :claim_value
            WHERE id = :id""",
            entity._asdict()
        )

    def remove(self, key: int) -> None:
        self._execute('DELETE FROM role_claims WHERE id = :id', {'id': key})


class UserClaimRepository(Repository):
    """Access to ``user_claims``."""

    _columns = 'id, user_id, claim_type, claim_value'

    def all(self) -> List[UserClaim]:
        return [UserClaim(**row) for row
                in self._fetchall(f'SELECT {self._columns} FROM user_claims')]

    def find(self, key: int) -> Optional[UserClaim]:
        row = self._fetchone(
            f'SELECT {self._columns} FROM user_claims WHERE id = :id', id=key
        )
        return UserClaim(**row) if row is not None else None

    def get_by_user_id(self, user_id: str) -> List[UserClaim]:
        rows = self._fetchall(
            f'SELECT {self._columns} FROM user_claims WHERE user_id = :user_id',
            user_id=user_id
        )
        return [UserClaim(**row) for row in rows]

    def get_users_for_claim(self, claim_type: str,
                            claim_value: Optional[str]) -> List[User]:
        """Get the users that hold a claim with this type and value."""
        params: Dict[str, Any] = {'claim_type': claim_type}
        if claim_value is None:
            value_clause = 'c.claim_value IS NULL'
        else:
            value_clause = 'c.claim_value = :claim_value'
            params['claim_value'] = claim_value
        rows = self._fetchall(
            f"""SELECT DISTINCT {_USER_COLUMNS_QUALIFIED}
            FROM users u
            JOIN user_claims c ON c.user_id = u.id
            WHERE c.claim_type = :claim_type AND {value_clause}""",
            **params
        )
        return [_row_to_user(row) for row in rows]

    def add(self, entity: UserClaim) -> None:
        self._execute(
            """INSERT INTO user_claims (user_id, claim_type, claim_value)
            VALUES (:user_id, :claim_type, :claim_value)""",
            entity._asdict()
        )

    def update(self, entity: UserClaim) -> None:
        self._execute(
            """UPDATE user_claims
            SET user_id = :user_id, claim_type = :claim_type,
                claim_value = :claim_value
            WHERE id = :id""",
            entity._asdict()
        )

    def remove(self, key: int) -> None:
        self._execute('DELETE FROM user_claims WHERE id = :id', {'id': key})


class UserLoginRepository(Repository):
    """Access to ``user_logins``."""

    _columns = 'login_provider, provider_key, provider_display_name, user_id'

    def all(self) -> List[UserLogin]:
        return [UserLogin(**row) for row
                in self._fetchall(f'SELECT {self._columns} FROM user_logins')]

    def find(self, key: UserLoginKey) -> Optional[UserLogin]:
        row = self._fetchone(
            f"""SELECT {self._columns} FROM user_logins
            WHERE login_provider = :login_provider
                AND provider_key = :provider_key""",
            **key._asdict()
        )
        if row is None:
            logger.debug('no login found for provider %s', key.login_provider)
            return None
        return UserLogin(**row)

    def find_by_user_id(self, user_id: str) -> List[UserLogin]:
        rows = self._fetchall(
            f'SELECT {self._columns} FROM user_logins WHERE user_id = :user_id',
            user_id=user_id
        )
        return [UserLogin(**row) for row in rows]

    def add(self, entity: UserLogin) -> None:
        self._execute(
            """INSERT INTO user_logins
                (login_provider, provider_key, provider_display_name, user_id)
            VALUES
                (:login_provider, :provider_key, :provider_display_name,
                 :user_id)""",
            entity._asdict()
        )

    def update(self, entity: UserLogin) -> None:
        self._execute(
            """UPDATE user_logins
            SET provider_display_name = :provider_display_name,
                user_id = :user_id
            WHERE login_provider = :login_provider
                AND provider_key = :provider_key""",
            entity._asdict()
        )

    def remove(self, key: UserLoginKey) -> None:
        self._execute(
            """DELETE FROM user_logins
            WHERE login_provider = :login_provider
                AND provider_key = :provider_key""",
            key._asdict()
        )


class UserTokenRepository(Repository):
    """Access to ``user_tokens``."""

    _columns = 'user_id, login_provider, name, value'

    def all(self) -> List[UserToken]:
        return [UserToken(**row) for row
                in self._fetchall(f'SELECT {self._columns} FROM user_tokens')]

    def find(self, key: UserTokenKey) -> Optional[UserToken]:
        row = self._fetchone(
            f"""SELECT {self._columns} FROM user_tokens
            WHERE user_id = :user_id AND login_provider = :login_provider
                AND name = :name""",
            **key._asdict()
        )
        return UserToken(**row) if row is not None else None

    def add(self, entity: UserToken) -> None:
        self._execute(
            """INSERT INTO user_tokens (user_id, login_provider, name, value)
            VALUES (:user_id, :login_provider, :name, :value)""",
            entity._asdict()
        )

    def update(self, entity: UserToken) -> None:
        self._execute(
            """UPDATE user_tokens SET value = :value
            WHERE user_id = :user_id AND login_provider = :login_provider
                AND name = :name""",
            entity._asdict()
        )

    def remove(self, key: UserTokenKey) -> None:
        self._execute(
            """DELETE FROM user_tokens
            WHERE user_id = :user_id AND login_provider = :login_provider
                AND name = :name""",
            key._asdict()
        )


class UserRoleRepository(Repository):
    """
    Access to the ``user_roles`` join table.

    Memberships are addressed by user id and role *name*; the role name is
    resolved to the role id before the join table is touched.
    """

    def _role_id(self, role_name: str) -> Optional[str]:
        row = self._fetchone('SELECT id FROM roles WHERE name = :name',
                             name=role_name)
        return row['id'] if row is not None else None

    def add(self, user_id: str, role_name: str) -> None:
        role_id = self._role_id(role_name)
        if role_id is None:
            raise NoSuchRole(f'No role named {role_name}')
        self._execute(
            'INSERT INTO user_roles (user_id, role_id) VALUES (:user_id, :role_id)',
            {'user_id': user_id, 'role_id': role_id}
        )

    def remove(self, user_id: str, role_name: str) -> None:
        role_id = self._role_id(role_name)
        if role_id is None:
            logger.debug('no role named %s; nothing to remove', role_name)
            return
        self._execute(
            'DELETE FROM user_roles WHERE user_id = :user_id AND role_id = :role_id',
            {'user_id': user_id, 'role_id': role_id}
        )

    def get_role_names_by_user_id(self, user_id: str) -> List[str]:
        rows = self._fetchall(
            """SELECT r.name FROM roles r
            JOIN user_roles ur ON ur.role_id = r.id
            WHERE ur.user_id = :user_id""",
            user_id=user_id
        )
        return [row['name'] for row in rows]

    def get_users_by_role_name(self, role_name: str) -> List[User]:
        rows = self._fetchall(
            f"""SELECT {_USER_COLUMNS_QUALIFIED}
            FROM users u
            JOIN user_roles ur ON ur.user_id = u.id
            JOIN roles r ON r.id = ur.role_id
            WHERE r.name = :role_name""",
            role_name=role_name
        )
        return [_row_to_user(row) for row in rows]

