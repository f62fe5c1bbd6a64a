"""
Relational schema for identity data.

+--------------+------------------------------------------------+-----------------------------+
| Table        | Columns                                        | Key                         |
+--------------+------------------------------------------------+-----------------------------+
| users        | id, user_name, normalized_user_name, email,    | id                          |
|              | normalized_email, email_confirmed,             |                             |
|              | password_hash, security_stamp,                 |                             |
|              | concurrency_stamp, phone_number,               |                             |
|              | phone_number_confirmed, two_factor_enabled,    |                             |
|              | lockout_end, lockout_enabled,                  |                             |
|              | access_failed_count                            |                             |
| roles        | id, name                                       | id                          |
| role_claims  | id, role_id, claim_type, claim_value           | id (auto)                   |
| user_claims  | id, user_id, claim_type, claim_value           | id (auto)                   |
| user_logins  | login_provider, provider_key,                  | login_provider,             |
|              | provider_display_name, user_id                 | provider_key                |
| user_tokens  | user_id, login_provider, name, value           | user_id, login_provider,    |
|              |                                                | name                        |
| user_roles   | user_id, role_id                               | user_id, role_id            |
+--------------+------------------------------------------------+-----------------------------+

Repositories address these tables with hand-written SQL; the table objects
here exist to create and drop the schema.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, \
    MetaData, String, Table, Text
from sqlalchemy.engine import Engine

metadata = MetaData()

users = Table(
    'users',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('user_name', String(256)),
    Column('normalized_user_name', String(256), unique=True, index=True),
    Column('email', String(256)),
    Column('normalized_email', String(256), index=True),
    Column('email_confirmed', Boolean, nullable=False, default=False),
    Column('password_hash', Text),
    Column('security_stamp', Text),
    Column('concurrency_stamp', Text),
    Column('phone_number', String(64)),
    Column('phone_number_confirmed', Boolean, nullable=False, default=False),
    Column('two_factor_enabled', Boolean, nullable=False, default=False),
    Column('lockout_end', DateTime(timezone=True)),
    Column('lockout_enabled', Boolean, nullable=False, default=False),
    Column('access_failed_count', Integer, nullable=False, default=0),
)

roles = Table(
    'roles',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('name', String(256), unique=True, index=True),
)

role_claims = Table(
    'role_claims',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('role_id', ForeignKey('roles.id', ondelete='CASCADE'),
           nullable=False, index=True),
    Column('claim_type', Text, nullable=False),
    Column('claim_value', Text),
)

user_claims = Table(
    'user_claims',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', ForeignKey('users.id', ondelete='CASCADE'),
           nullable=False, index=True),
    Column('claim_type', Text, nullable=False),
    Column('claim_value', Text),
)

user_logins = Table(
    'user_logins',
    metadata,
    Column('login_provider', String(128), primary_key=True),
    Column('provider_key', String(128), primary_key=True),
    Column('provider_display_name', Text),
    Column('user_id', ForeignKey('users.id', ondelete='CASCADE'),
           nullable=False, index=True),
)

user_tokens = Table(
    'user_tokens',
    metadata,
    Column('user_id', ForeignKey('users.id', ondelete='CASCADE'),
           primary_key=True),
    Column('login_provider', String(128), primary_key=True),
    Column('name', String(128), primary_key=True),
    Column('value', Text),
)

user_roles = Table(
    'user_roles',
    metadata,
    Column('user_id', ForeignKey('users.id', ondelete='CASCADE'),
           primary_key=True),
    Column('role_id', ForeignKey('roles.id', ondelete='CASCADE'),
           primary_key=True, index=True),
)


def create_all(engine: Engine) -> None:
    """Create all tables in the database."""
    metadata.create_all(bind=engine)


def drop_all(engine: Engine) -> None:
    """Drop all tables in the database."""
    metadata.drop_all(bind=engine)
