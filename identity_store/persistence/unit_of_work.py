"""
Binds one connection and one transaction to a family of repositories.

A :class:`.UnitOfWork` is owned by a single caller (e.g. one request); it is
not safe to share one instance between threads. Every time a transaction is
begun, a fresh set of repositories is built and bound to it, so repositories
obtained before a :meth:`.UnitOfWork.commit` must not be reused afterwards.
"""

import logging
from contextlib import contextmanager
from typing import Any, Generator, Optional

from sqlalchemy.engine import Connection, Engine, Transaction
from sqlalchemy.exc import SQLAlchemyError

from ..domain import CommitResult
from ..exceptions import CommitFailed, TransactionInactive, UnitOfWorkClosed
from .repositories import RoleClaimRepository, RoleRepository, \
    UserClaimRepository, UserLoginRepository, UserRepository, \
    UserRoleRepository, UserTokenRepository

logger = logging.getLogger(__name__)


class UnitOfWork(object):
    """
    One open transaction, and the repositories that participate in it.

    Intended to be used as a context manager:

    .. code-block:: python

       with UnitOfWork(engine) as uow:
           uow.roles.add(Role(id=role_id, name='moderator'))
           uow.commit()

    :meth:`.commit` always leaves the instance with a new, usable transaction,
    whether or not the previous one could be committed.
    """

    roles: RoleRepository
    role_claims: RoleClaimRepository
    users: UserRepository
    user_claims: UserClaimRepository
    user_logins: UserLoginRepository
    user_tokens: UserTokenRepository
    user_roles: UserRoleRepository

    def __init__(self, engine: Engine) -> None:
        """Open a connection on ``engine`` and begin a transaction."""
        self._connection: Optional[Connection] = engine.connect()
        self._transaction: Optional[Transaction] = None
        self._begin()

    def _begin(self) -> None:
        if self._connection is None:
            raise UnitOfWorkClosed('Unit of work is closed')
        self._transaction = self._connection.begin()
        self.roles = RoleRepository(self._transaction)
        self.role_claims = RoleClaimRepository(self._transaction)
        self.users = UserRepository(self._transaction)
        self.user_claims = UserClaimRepository(self._transaction)
        self.user_logins = UserLoginRepository(self._transaction)
        self.user_tokens = UserTokenRepository(self._transaction)
        self.user_roles = UserRoleRepository(self._transaction)

    @property
    def closed(self) -> bool:
        """True once :meth:`.close` has been called."""
        return self._connection is None

    @property
    def in_transaction(self) -> bool:
        """True if there is an active transaction to work in."""
        return self._transaction is not None and self._transaction.is_active

    def commit(self) -> CommitResult:
        """
        Commit the active transaction, and begin a new one.

        If the commit fails, the transaction is rolled back instead. Either
        way a new transaction is begun, so the unit of work remains usable.
        This method does not raise on a failed commit; inspect the result.
        If the transaction had already ended, nothing is committed and the
        result fails with :class:`.TransactionInactive`.

        Returns
        -------
        :class:`.CommitResult`

        """
        if self._connection is None:
            raise UnitOfWorkClosed('Unit of work is closed')
        result = CommitResult(succeeded=True)
        try:
            if self.in_transaction:
                self._transaction.commit()
                logger.debug('Committed transaction')
            else:
                logger.warning('Transaction ended before commit; nothing'
                               ' was committed')
                self._discard()
                result = CommitResult(
                    succeeded=False,
                    error=TransactionInactive('Transaction ended before commit')
                )
        except SQLAlchemyError as e:
            logger.warning('Commit failed, rolling back: %s', str(e))
            self._discard()
            result = CommitResult(succeeded=False, error=e)
        finally:
            self._begin()
        return result

    def rollback(self) -> None:
        """Discard the active transaction, and begin a new one."""
        if self._connection is None:
            raise UnitOfWorkClosed('Unit of work is closed')
        self._discard()
        self._begin()

    def _discard(self) -> None:
        if self._transaction is None:
            return
        was_active = self._transaction.is_active
        try:
            self._transaction.rollback()
            if not was_active and self._connection is not None:
                # A failed commit deactivates the transaction, but may leave
                # the driver's transaction open.
                self._connection.connection.rollback()
        except Exception as e:
            logger.error('Rollback failed: %s', str(e))
        self._transaction = None

    @contextmanager
    def transaction(self) -> Generator['UnitOfWork', None, None]:
        """
        Context manager for a single atomic operation.

        Work done in the block is committed on exit. If the block raises, the
        work is rolled back and the exception propagates; if the commit is
        rolled back, :class:`.CommitFailed` is raised.
        """
        try:
            yield self
        except Exception:
            self.rollback()
            raise
        result = self.commit()
        if not result.succeeded:
            raise CommitFailed('Commit failed, rolled back') from result.error

    def close(self) -> None:
        """Roll back uncommitted work and release the connection."""
        if self._connection is None:
            return
        self._discard()
        self._connection.close()
        self._connection = None

    dispose = close

    def __enter__(self) -> 'UnitOfWork':
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
