"""Tests for :mod:`identity_store.persistence.repositories`."""

import uuid
from datetime import datetime
from unittest import TestCase

from pytz import UTC, timezone
from sqlalchemy.exc import IntegrityError

from ...exceptions import NoSuchRole, TransactionInactive
from ..entities import Role, RoleClaim, User, UserClaim, UserLogin, \
    UserLoginKey, UserToken, UserTokenKey
from .util import temporary_db


def _user(**kwargs) -> User:
    user_id = kwargs.pop('id', str(uuid.uuid4()))
    name = kwargs.pop('user_name', f'user-{user_id[:8]}')
    return User(id=user_id, user_name=name,
                normalized_user_name=name.upper(), **kwargs)


class TestUserRepository(TestCase):
    """Rows of ``users`` are read back as :class:`.User` entities."""

    def test_add_then_find(self):
        """An added user can be found by id, name and e-mail."""
        lockout_end = datetime(2030, 1, 2, 3, 4, 5, tzinfo=UTC)
        user = _user(email='foo@bar.edu', normalized_email='FOO@BAR.EDU',
                     email_confirmed=True, lockout_end=lockout_end,
                     lockout_enabled=True, access_failed_count=2)
        with temporary_db() as uow:
            uow.users.add(user)
            self.assertEqual(uow.users.find(user.id), user)
            self.assertEqual(
                uow.users.find_by_normalized_user_name(
                    user.normalized_user_name
                ),
                user
            )
            self.assertEqual(
                uow.users.find_by_normalized_email('FOO@BAR.EDU'), user
            )

    def test_lockout_end_is_stored_in_utc(self):
        """A timestamp in another zone comes back as the same UTC instant."""
        eastern = timezone('US/Eastern')
        lockout_end = eastern.localize(datetime(2030, 6, 1, 12, 0, 0))
        user = _user(lockout_end=lockout_end)
        with temporary_db() as uow:
            uow.users.add(user)
            found = uow.users.find(user.id)
            self.assertEqual(found.lockout_end, lockout_end)
            self.assertEqual(found.lockout_end.tzinfo, UTC)

    def test_find_missing(self):
        """Absence is reported as None."""
        with temporary_db() as uow:
            self.assertIsNone(uow.users.find(str(uuid.uuid4())))
            self.assertIsNone(uow.users.find_by_normalized_user_name('NOPE'))
            self.assertIsNone(uow.users.find_by_normalized_email('NO@PE'))

    def test_missing_email_is_logged_in_full(self):
        email = 'SOMEONE.WITH.A.LONG.NAME@EXAMPLE.EDU'
        with temporary_db() as uow:
            with self.assertLogs('identity_store.persistence.repositories',
                                 level='DEBUG') as logs:
                self.assertIsNone(uow.users.find_by_normalized_email(email))
        self.assertIn(email, logs.output[0])

    def test_add_duplicate(self):
        """Adding a user with an existing id is an integrity error."""
        user = _user()
        with temporary_db() as uow:
            uow.users.add(user)
            with self.assertRaises(IntegrityError):
                uow.users.add(user._replace(user_name='other',
                                            normalized_user_name='OTHER'))

    def test_update(self):
        """Every non-key column is written."""
        user = _user()
        with temporary_db() as uow:
            uow.users.add(user)
            changed = user._replace(phone_number='555-1234',
                                    phone_number_confirmed=True,
                                    two_factor_enabled=True)
            uow.users.update(changed)
            self.assertEqual(uow.users.find(user.id), changed)

    def test_update_and_remove_missing(self):
        """Updating or removing a missing user affects nothing."""
        with temporary_db() as uow:
            uow.users.update(_user())
            uow.users.remove(str(uuid.uuid4()))
            self.assertEqual(uow.users.all(), [])

    def test_remove_cascades(self):
        """Removing a user removes its satellite rows."""
        user = _user()
        with temporary_db() as uow:
            uow.users.add(user)
            uow.user_claims.add(UserClaim(user_id=user.id, claim_type='x'))
            uow.user_logins.add(UserLogin('github', '42', user.id))
            uow.user_tokens.add(UserToken(user.id, 'github', 'access', 'v'))
            uow.users.remove(user.id)
            self.assertIsNone(uow.users.find(user.id))
            self.assertEqual(uow.user_claims.all(), [])
            self.assertEqual(uow.user_logins.all(), [])
            self.assertEqual(uow.user_tokens.all(), [])


class TestRoleRepository(TestCase):
    """Roles are keyed by id, and have unique names."""

    def test_crud(self):
        """Roles can be added, found, renamed and removed."""
        role = Role(id=str(uuid.uuid4()), name='moderator')
        with temporary_db() as uow:
            uow.roles.add(role)
            self.assertEqual(uow.roles.find(role.id), role)
            self.assertEqual(uow.roles.find_by_name('moderator'), role)

            uow.roles.update(role._replace(name='editor'))
            self.assertIsNone(uow.roles.find_by_name('moderator'))
            self.assertEqual(uow.roles.find(role.id).name, 'editor')

            uow.roles.remove(role.id)
            self.assertIsNone(uow.roles.find(role.id))
            self.assertEqual(uow.roles.all(), [])

    def test_duplicate_name(self):
        """Two roles may not share a name."""
        with temporary_db() as uow:
            uow.roles.add(Role(id=str(uuid.uuid4()), name='admin'))
            with self.assertRaises(IntegrityError):
                uow.roles.add(Role(id=str(uuid.uuid4()), name='admin'))

    def test_role_claims(self):
        """Claims attached to a role are listed by role id."""
        role = Role(id=str(uuid.uuid4()), name='moderator')
        with temporary_db() as uow:
            uow.roles.add(role)
            uow.role_claims.add(RoleClaim(role.id, 'archive', 'math'))
            uow.role_claims.add(RoleClaim(role.id, 'archive', 'cs'))
            claims = uow.role_claims.find_by_role_id(role.id)
            self.assertEqual({c.claim_value for c in claims}, {'math', 'cs'})
            self.assertTrue(all(c.id is not None for c in claims))

            first = claims[0]
            uow.role_claims.update(first._replace(claim_value='physics'))
            self.assertEqual(uow.role_claims.find(first.id).claim_value,
                             'physics')
            uow.role_claims.remove(first.id)
            self.assertIsNone(uow.role_claims.find(first.id))
            self.assertEqual(len(uow.role_claims.all()), 1)


class TestUserClaimRepository(TestCase):
    """Claims are matched on type and value, including null values."""

    def test_get_users_for_claim(self):
        """Each holder is returned once."""
        alice, bob = _user(user_name='alice'), _user(user_name='bob')
        with temporary_db() as uow:
            uow.users.add(alice)
            uow.users.add(bob)
            uow.user_claims.add(UserClaim(alice.id, 'dept', 'physics'))
            uow.user_claims.add(UserClaim(alice.id, 'dept', 'physics'))
            uow.user_claims.add(UserClaim(bob.id, 'dept', 'math'))
            uow.user_claims.add(UserClaim(bob.id, 'admin'))

            self.assertEqual(uow.user_claims.get_users_for_claim('dept',
                                                                 'physics'),
                             [alice])
            self.assertEqual(uow.user_claims.get_users_for_claim('admin',
                                                                 None),
                             [bob])
            self.assertEqual(uow.user_claims.get_users_for_claim('dept',
                                                                 'biology'),
                             [])
            self.assertEqual(len(uow.user_claims.get_by_user_id(alice.id)), 2)


class TestUserLoginRepository(TestCase):
    """Logins are keyed by provider and provider key."""

    def test_crud(self):
        user = _user()
        key = UserLoginKey('orcid', '0000-0001')
        with temporary_db() as uow:
            uow.users.add(user)
            uow.user_logins.add(UserLogin(*key, user_id=user.id,
                                          provider_display_name='ORCID'))
            login = uow.user_logins.find(key)
            self.assertEqual(login.user_id, user.id)
            self.assertEqual(login.key, key)
            self.assertEqual(uow.user_logins.find_by_user_id(user.id), [login])

            uow.user_logins.update(login._replace(provider_display_name='O'))
            self.assertEqual(uow.user_logins.find(key).provider_display_name,
                             'O')

            uow.user_logins.remove(key)
            self.assertIsNone(uow.user_logins.find(key))

    def test_login_for_missing_user(self):
        """A login must belong to an existing user."""
        with temporary_db() as uow:
            with self.assertRaises(IntegrityError):
                uow.user_logins.add(UserLogin('orcid', '1', str(uuid.uuid4())))


class TestUserTokenRepository(TestCase):
    def test_crud(self):
        user = _user()
        key = UserTokenKey(user.id, 'github', 'refresh')
        with temporary_db() as uow:
            uow.users.add(user)
            uow.user_tokens.add(UserToken(*key, value='abc'))
            self.assertEqual(uow.user_tokens.find(key).value, 'abc')
            self.assertEqual(uow.user_tokens.find(key).key, key)
            uow.user_tokens.update(UserToken(*key, value='def'))
            self.assertEqual(uow.user_tokens.find(key).value, 'def')
            uow.user_tokens.remove(key)
            self.assertIsNone(uow.user_tokens.find(key))


class TestUserRoleRepository(TestCase):
    """Memberships are addressed by role name."""

    def test_membership(self):
        user = _user()
        role = Role(id=str(uuid.uuid4()), name='moderator')
        with temporary_db() as uow:
            uow.users.add(user)
            uow.roles.add(role)
            uow.user_roles.add(user.id, 'moderator')
            self.assertEqual(uow.user_roles.get_role_names_by_user_id(user.id),
                             ['moderator'])
            self.assertEqual(uow.user_roles.get_users_by_role_name('moderator'),
                             [user])

            uow.user_roles.remove(user.id, 'moderator')
            self.assertEqual(uow.user_roles.get_role_names_by_user_id(user.id),
                             [])

    def test_unknown_role(self):
        """Adding to an unknown role raises; removing from one does not."""
        user = _user()
        with temporary_db() as uow:
            uow.users.add(user)
            with self.assertRaises(NoSuchRole):
                uow.user_roles.add(user.id, 'nope')
            uow.user_roles.remove(user.id, 'nope')


class TestStaleRepository(TestCase):
    """A repository is only usable while its transaction is active."""

    def test_use_after_commit(self):
        with temporary_db() as uow:
            users = uow.users
            uow.commit()
            with self.assertRaises(TransactionInactive):
                users.all()
            self.assertEqual(uow.users.all(), [])
