"""Flask application integration."""

import logging
from typing import Optional

from flask import Flask, current_app, g
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.engine import Engine

from . import config
from .persistence import UnitOfWork, create_all, enforce_foreign_keys
from .stores import RoleStore, UserStore

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'identity_store'
_UNIT_OF_WORK = 'identity_unit_of_work'

db: SQLAlchemy = SQLAlchemy()
"""Provides the engine of each application; the ORM session is not used."""


class IdentityStorage(object):
    """
    Gives each application context its own :class:`.UnitOfWork`.

    Intended for use in a Flask application factory, for example:

    .. code-block:: python

       from flask import Flask
       from identity_store.extension import IdentityStorage


       def create_web_app() -> Flask:
          app = Flask('someapp')
          app.config.from_pyfile('config.py')
          IdentityStorage(app)
          return app


    Views then use :func:`.current_user_store` and
    :func:`.current_role_store`. Work that is not committed by the time the
    application context is torn down is rolled back.
    """

    def __init__(self, app: Optional[Flask] = None) -> None:
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """
        Set configuration defaults, and attach the engine to ``app``.

        ``IDENTITY_DATABASE_URI`` and ``IDENTITY_DATABASE_ECHO`` are the
        defaults for ``SQLALCHEMY_DATABASE_URI`` and ``SQLALCHEMY_ECHO``.

        Parameters
        ----------
        app : :class:`Flask`

        """
        app.config.setdefault('IDENTITY_DATABASE_URI',
                              config.IDENTITY_DATABASE_URI)
        app.config.setdefault('IDENTITY_DATABASE_ECHO',
                              config.IDENTITY_DATABASE_ECHO)
        app.config.setdefault('IDENTITY_CREATE_DB', config.IDENTITY_CREATE_DB)
        app.config.setdefault('LOGLEVEL', config.LOGLEVEL)
        app.config.setdefault('SQLALCHEMY_DATABASE_URI',
                              app.config['IDENTITY_DATABASE_URI'])
        app.config.setdefault('SQLALCHEMY_ECHO',
                              app.config['IDENTITY_DATABASE_ECHO'])
        logging.getLogger('identity_store').setLevel(app.config['LOGLEVEL'])

        db.init_app(app)
        app.extensions[EXTENSION_KEY] = self
        with app.app_context():
            enforce_foreign_keys(db.engine)
            if app.config['IDENTITY_CREATE_DB']:
                logger.info('Creating identity tables')
                create_all(db.engine)

        app.teardown_appcontext(self.teardown)

    @staticmethod
    def teardown(exception: Optional[BaseException] = None) -> None:
        """Close the unit of work of the ending application context."""
        unit_of_work = g.pop(_UNIT_OF_WORK, None)
        if unit_of_work is None:
            return
        if exception is not None:
            logger.error('Discarding uncommitted identity work after error: %s',
                         str(exception))
        unit_of_work.close()


def get_engine() -> Engine:
    """Get the engine of the current application."""
    if EXTENSION_KEY not in current_app.extensions:
        raise RuntimeError('IdentityStorage is not initialized')
    return db.engine


def current_unit_of_work() -> UnitOfWork:
    """Get/create the unit of work for this application context."""
    unit_of_work = g.get(_UNIT_OF_WORK)
    if unit_of_work is None or unit_of_work.closed:
        unit_of_work = UnitOfWork(get_engine())
        setattr(g, _UNIT_OF_WORK, unit_of_work)
    return unit_of_work


def current_user_store() -> UserStore:
    """Get a :class:`.UserStore` bound to :func:`.current_unit_of_work`."""
    return UserStore(current_unit_of_work())


def current_role_store() -> RoleStore:
    """Get a :class:`.RoleStore` bound to :func:`.current_unit_of_work`."""
    return RoleStore(current_unit_of_work())
