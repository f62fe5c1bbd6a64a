"""Generate synthetic users and roles for testing and development purposes."""

import random

from flask import Flask
from mimesis import Person
from mimesis.locales import Locale

from identity_store import Claim, IdentityRole, IdentityUser, UserLoginInfo
from identity_store.extension import IdentityStorage, current_role_store, \
    current_user_store

LOCALES = list(Locale)
COUNT = 500
ROLES = ['administrator', 'moderator', 'editor']


def _get_locale() -> Locale:
    return random.choice(LOCALES)


app = Flask('identity_store')
app.config['IDENTITY_DATABASE_URI'] = 'sqlite:///test.db'
app.config['IDENTITY_CREATE_DB'] = True
IdentityStorage(app)

with app.app_context():
    roles = current_role_store()
    for name in ROLES:
        if roles.find_by_name(name) is None:
            roles.create(IdentityRole(name=name))

    users = current_user_store()
    for i in range(COUNT):
        locale = _get_locale()
        person = Person(locale)
        user_name = f'{person.username()}{i}'
        email = person.email()
        user = IdentityUser(
            user_name=user_name,
            normalized_user_name=user_name.upper(),
            email=email,
            normalized_email=email.upper(),
            email_confirmed=random.randint(0, 100) < 90,
            phone_number=person.telephone(),
            lockout_enabled=random.randint(0, 100) < 98,
        )
        result = users.create(user)
        if not result.succeeded:
            print(f'Skipped {user_name}: {result.errors[0].description}')
            continue
        if random.randint(0, 100) < 10:
            users.add_to_role(user, random.choice(ROLES))
        if random.randint(0, 100) < 30:
            users.add_login(user, UserLoginInfo('orcid', person.identifier()))
        users.add_claims(user, [Claim('locale', locale.value)])

    print(f'{len(list(users.users))} users in the database')
