"""Helpers for building engines and coercing values read from the database."""

from datetime import datetime
from typing import Any, Mapping, Optional, Union

import dateutil.parser
from pytz import UTC
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from .. import config


def create_engine_from_config(settings: Optional[Mapping[str, Any]] = None
                              ) -> Engine:
    """
    Build an :class:`.Engine` from settings, outside of a Flask application.

    Flask applications get their engine from :class:`.IdentityStorage`
    instead.

    Parameters
    ----------
    settings : mapping or None
        Missing keys fall back to :mod:`identity_store.config`.

    Returns
    -------
    :class:`.Engine`

    """
    settings = settings or {}
    uri = settings.get('IDENTITY_DATABASE_URI', config.IDENTITY_DATABASE_URI)
    echo = settings.get('IDENTITY_DATABASE_ECHO',
                        config.IDENTITY_DATABASE_ECHO)
    kwargs: dict = {'echo': echo}
    if uri.startswith('sqlite'):
        kwargs['connect_args'] = {'check_same_thread': False}
        # An in-memory database only exists for as long as its connection.
        if uri in ('sqlite://', 'sqlite:///:memory:'):
            kwargs['poolclass'] = StaticPool
    engine = create_engine(uri, **kwargs)
    enforce_foreign_keys(engine)
    return engine


def enforce_foreign_keys(engine: Engine) -> None:
    """Turn on foreign key checks for each new SQLite connection of ``engine``."""
    if engine.dialect.name == 'sqlite':
        event.listen(engine, 'connect', _enable_foreign_keys)


def _enable_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    # SQLite ignores ON DELETE CASCADE unless asked, per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA foreign_keys=ON')
    cursor.close()


def as_utc(value: Union[None, str, datetime]) -> Optional[datetime]:
    """
    Coerce a timestamp read from the database to an aware UTC datetime.

    Drivers differ: some return aware datetimes, some naive ones (which we
    store in UTC), and SQLite hands back plain strings for raw queries.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = dateutil.parser.parse(value)
    if value.tzinfo is None:
        return UTC.localize(value)
    return value.astimezone(UTC)


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a timestamp to UTC before it is written."""
    if value is None:
        return None
    if value.tzinfo is None:
        return UTC.localize(value)
    return value.astimezone(UTC)
