"""
Relational persistence for identity data.

Repositories in :mod:`.repositories` issue parameterized SQL against the
tables in :mod:`.schema`; a :class:`.UnitOfWork` binds them to one
transaction.
"""

from . import entities, repositories, schema, util
from .schema import create_all, drop_all
from .unit_of_work import UnitOfWork
from .util import create_engine_from_config, enforce_foreign_keys
