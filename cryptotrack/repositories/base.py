from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


class BaseRepository:
    """Statement-level repository working inside a session owned by the caller.

    Subclasses never commit or roll back; the transaction belongs to whoever
    handed them the session.
    """

    def __init__(self, session: AsyncSession):
        self.session = session


class TransactionalRepository:
    """Repository that checks out its own sessions from the pool.

    Every public operation runs inside ``transaction()``, so a unit of work is
    committed as a whole or not at all.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Yield a session inside a transaction.

        Commits when the block exits normally, rolls back when it raises, and
        returns the connection to the pool on every path.
        """
        async with self.session_maker() as session:
            async with session.begin():
                yield session
