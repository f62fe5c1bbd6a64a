"""Tests for :mod:`identity_store.domain`."""

from unittest import TestCase

from ..domain import Claim, IdentityError, IdentityResult, IdentityUser
from ..exceptions import NoSuchRole


class TestIdentityUser(TestCase):
    def test_defaults(self):
        """New users get their own id and stamps."""
        one, two = IdentityUser(), IdentityUser()
        self.assertNotEqual(one.id, two.id)
        self.assertNotEqual(one.security_stamp, two.security_stamp)
        self.assertTrue(one.lockout_enabled)
        self.assertEqual(one.access_failed_count, 0)

    def test_mutable(self):
        user = IdentityUser(user_name='alice')
        user.user_name = 'bob'
        self.assertEqual(user.user_name, 'bob')


class TestIdentityResult(TestCase):
    def test_success(self):
        result = IdentityResult.success()
        self.assertTrue(result.succeeded)
        self.assertEqual(result.errors, ())

    def test_from_exception(self):
        """The exception's class names the failure."""
        result = IdentityResult.from_exception(NoSuchRole('No role named x'))
        self.assertFalse(result.succeeded)
        self.assertEqual(result.errors,
                         (IdentityError('NoSuchRole', 'No role named x'),))


class TestClaim(TestCase):
    def test_value_is_optional(self):
        self.assertIsNone(Claim('admin').value)
        self.assertNotEqual(Claim('admin'), Claim('admin', ''))
