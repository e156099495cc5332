from typing import Any, AsyncIterator, Dict, Iterable

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from notes_api.core.config import settings


def _connect_args() -> Dict[str, Any]:
    if settings.DATABASE_SSL and settings.DATABASE_URL.startswith("postgresql+asyncpg"):
        return {"ssl": "require"}
    return {}


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    connect_args=_connect_args(),
)

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


async def get_db() -> AsyncIterator[AsyncSession]:
    """Yield a database session for the duration of a request"""
    async with AsyncSessionLocal() as session:
        yield session


_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def upsert(session: AsyncSession, model, values: Dict[str, Any], conflict_on: Iterable[str]):
    """Build an INSERT ... ON CONFLICT DO UPDATE for the session's dialect.

    Every column in ``values`` that is not part of the conflict target is
    overwritten when the row already exists.
    """
    dialect = session.bind.dialect.name
    try:
        insert = _INSERTS[dialect]
    except KeyError:
        raise NotImplementedError(f"Upsert is not supported on {dialect}")

    conflict_on = list(conflict_on)
    stmt = insert(model).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=conflict_on,
        set_={key: stmt.excluded[key] for key in values if key not in conflict_on},
    )
