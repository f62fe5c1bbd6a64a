"""Testing helpers."""

from contextlib import contextmanager
from typing import Generator

from .. import UnitOfWork, create_all, create_engine_from_config, drop_all


@contextmanager
def temporary_db(database_url: str = 'sqlite://', create: bool = True,
                 drop: bool = True) -> Generator[UnitOfWork, None, None]:
    """Provide a unit of work on an in-memory sqlite database."""
    engine = create_engine_from_config({'IDENTITY_DATABASE_URI': database_url})
    if create:
        create_all(engine)
    try:
        with UnitOfWork(engine) as uow:
            yield uow
    finally:
        if drop:
            drop_all(engine)
        engine.dispose()
