"""Create all tables in the identity database."""

from flask import Flask

from identity_store.extension import IdentityStorage, get_engine
from identity_store.persistence import create_all

app = Flask('identity_store')
IdentityStorage(app)
with app.app_context():
    create_all(get_engine())
