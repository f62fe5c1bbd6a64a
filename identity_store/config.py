"""Configuration defaults, read from the environment."""

import os

IDENTITY_DATABASE_URI = os.environ.get('IDENTITY_DATABASE_URI', 'sqlite://')
"""SQLAlchemy URI of the database that holds users, roles, claims, etc."""

IDENTITY_DATABASE_ECHO = bool(int(os.environ.get('IDENTITY_DATABASE_ECHO', '0')))
"""If 1, log every statement issued by the engine."""

IDENTITY_CREATE_DB = bool(int(os.environ.get('IDENTITY_CREATE_DB', '0')))
"""If 1, create missing tables when the Flask extension is initialized."""

LOGLEVEL = int(os.environ.get('LOGLEVEL', 20))
