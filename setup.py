"""Install the identity store package."""

from setuptools import setup, find_packages

setup(
    name='identity-store',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    install_requires=[
        "sqlalchemy>=2.0",
        "pydantic>=2.0",
        "flask",
        "flask-sqlalchemy>=3.0",
        "pytz",
        "python-dateutil",
    ],
    extras_require={
        "test": [
            "pytest",
            "hypothesis",
            "mimesis",
        ]
    },
    zip_safe=False
)
