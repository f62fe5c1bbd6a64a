"""
Relational storage for user accounts, roles, claims, external logins and
authentication tokens.

.. code-block:: python

   from identity_store import IdentityUser, UnitOfWork, UserStore
   from identity_store.persistence import create_all, create_engine_from_config

   engine = create_engine_from_config({'IDENTITY_DATABASE_URI': 'sqlite://'})
   create_all(engine)
   with UnitOfWork(engine) as uow:
       store = UserStore(uow)
       result = store.create(IdentityUser(user_name='alice',
                                          normalized_user_name='ALICE'))

See :mod:`identity_store.extension` for use in a Flask application.
"""

from .domain import Claim, CommitResult, IdentityError, IdentityResult, \
    IdentityRole, IdentityUser, UserLoginInfo
from .persistence import UnitOfWork
from .stores import RoleStore, UserStore
