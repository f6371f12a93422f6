from typing import Awaitable, Callable, TypeVar
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionHelper:
    """Runs a unit of work inside a single database transaction."""
    
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
    
    async def execute_in_transaction(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """
        Run ``work`` with one session and commit if it returns.
        
        Any exception rolls the transaction back and is re-raised. If the
        rollback itself fails, its exception is raised instead (chained to the
        original). The session is closed exactly once either way. No retries.
        """
        session = self.session_factory()
        try:
            await session.begin()
            result = await work(session)
            await session.commit()
            return result
        except BaseException as e:
            logger.error(f"Rolling back transaction: {e!r}")
            await session.rollback()
            raise
        finally:
            await session.close()
