"""Tests for :mod:`identity_store.extension`."""

import logging
import os
import tempfile
from unittest import TestCase

from flask import Flask

from ..domain import IdentityUser, UserLoginInfo
from ..extension import IdentityStorage, current_role_store, \
    current_unit_of_work, current_user_store, db, get_engine


class TestIdentityStorage(TestCase):
    """The extension gives each application context one unit of work."""

    def setUp(self):
        self.workdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.workdir.cleanup)
        self.app = Flask('test')
        self.app.config['IDENTITY_DATABASE_URI'] = \
            f'sqlite:///{os.path.join(self.workdir.name, "identity.db")}'
        self.app.config['IDENTITY_CREATE_DB'] = True
        IdentityStorage(self.app)
        self.addCleanup(lambda: _engine_of(self.app).dispose())

    def test_one_unit_of_work_per_context(self):
        with self.app.app_context():
            uow = current_unit_of_work()
            self.assertIs(current_unit_of_work(), uow)
            self.assertTrue(uow.in_transaction)
        self.assertTrue(uow.closed)

        with self.app.app_context():
            self.assertIsNot(current_unit_of_work(), uow)

    def test_committed_work_outlives_context(self):
        user = IdentityUser(user_name='alice', normalized_user_name='ALICE')
        with self.app.app_context():
            self.assertTrue(current_user_store().create(user).succeeded)

        with self.app.app_context():
            self.assertEqual(current_user_store().find_by_name('ALICE'), user)
            self.assertEqual(list(current_role_store().roles), [])

    def test_teardown_after_error(self):
        """Uncommitted work is discarded, and the error is logged."""
        ctx = self.app.app_context()
        ctx.push()
        uow = current_unit_of_work()
        with self.assertLogs('identity_store.extension', level='ERROR'):
            ctx.pop(RuntimeError('boom'))
        self.assertTrue(uow.closed)

    def test_engine_comes_from_flask_sqlalchemy(self):
        """The application's flask-sqlalchemy engine backs each unit of work."""
        self.assertEqual(self.app.config['SQLALCHEMY_DATABASE_URI'],
                         self.app.config['IDENTITY_DATABASE_URI'])
        with self.app.app_context():
            self.assertIs(get_engine(), db.engine)
            self.assertIs(current_unit_of_work()._connection.engine,
                          db.engine)

    def test_deleting_a_user_removes_its_logins(self):
        """Foreign keys are enforced on the application's connections."""
        user = IdentityUser(user_name='alice', normalized_user_name='ALICE')
        with self.app.app_context():
            store = current_user_store()
            store.create(user)
            store.add_login(user, UserLoginInfo('orcid', '0000-0001'))
            self.assertTrue(store.delete(user).succeeded)
            self.assertIsNone(store.find_by_login('orcid', '0000-0001'))

    def test_loglevel(self):
        logger = logging.getLogger('identity_store')
        level = logger.level
        self.addCleanup(logger.setLevel, level)
        app = Flask('other')
        app.config['LOGLEVEL'] = logging.DEBUG
        IdentityStorage(app)
        self.assertEqual(logger.level, logging.DEBUG)
        _engine_of(app).dispose()


class TestNotInitialized(TestCase):
    def test_get_engine(self):
        with Flask('bare').app_context():
            with self.assertRaises(RuntimeError):
                get_engine()


class TestInMemoryDatabase(TestCase):
    """An in-memory database is shared by all contexts of an application."""

    def test_shared_between_contexts(self):
        app = Flask('memory')
        app.config['IDENTITY_DATABASE_URI'] = 'sqlite://'
        app.config['IDENTITY_CREATE_DB'] = True
        IdentityStorage(app)
        self.addCleanup(lambda: _engine_of(app).dispose())

        user = IdentityUser(user_name='bob', normalized_user_name='BOB')
        with app.app_context():
            self.assertTrue(current_user_store().create(user).succeeded)
        with app.app_context():
            self.assertEqual(current_user_store().find_by_name('BOB'), user)


def _engine_of(app: Flask):
    with app.app_context():
        return get_engine()
