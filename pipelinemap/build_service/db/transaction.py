"""Transaction coordinator.

Every write goes through :meth:`TransactionCoordinator.run`, which wraps a
unit of work in one database transaction::

    async def _create(uow: UnitOfWork) -> PipelineEnvMap:
        return await uow.pipeline_env_maps.create(space_id, name, env_ids)

    row = await coordinator.run(_create)

The callable receives a :class:`UnitOfWork` scoped to the transaction.  If it
returns, the transaction is committed; if it raises (or the task is
cancelled), the transaction is rolled back and the exception propagates
unchanged.  Failures to begin or commit the transaction itself, and units of
work that outlive the configured timeout, are raised as :class:`TransactionError`.
A failing rollback is logged and never masks the error that triggered it.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, TypeVar

from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from pipelinemap.build_service.errors import TransactionError
from pipelinemap.build_service.managers.pipeline_env_maps import PipelineEnvMapRepository
from pipelinemap.build_service.models.enums import IsolationLevel

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

T = TypeVar("T")


class UnitOfWork:
    """Transaction-scoped view of the stores.

    Only valid inside the callable passed to :meth:`TransactionCoordinator.run`
    (or the ``unscoped`` block); any access afterwards raises ``RuntimeError``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session: AsyncSession | None = session

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            msg = "Unit of work used after its transaction ended"
            raise RuntimeError(msg)
        return self._session

    @property
    def pipeline_env_maps(self) -> PipelineEnvMapRepository:
        return PipelineEnvMapRepository(self.session)

    def close(self) -> None:
        self._session = None


class TransactionCoordinator:
    """Runs units of work in transactions with a fixed isolation level.

    Instantiated once during app lifespan; safe to share across requests
    because each call opens its own session.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        isolation_level: IsolationLevel | str = IsolationLevel.DEFAULT,
        timeout: float | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._isolation_level = IsolationLevel.parse(isolation_level)
        self._timeout = timeout

    @property
    def isolation_level(self) -> IsolationLevel:
        return self._isolation_level

    async def run(self, fn: Callable[[UnitOfWork], Awaitable[T]]) -> T:
        """Execute *fn* inside a transaction and return its result."""
        async with self._session_factory() as session:
            await self._begin(session)

            uow = UnitOfWork(session)
            try:
                async with asyncio.timeout(self._timeout):
                    result = await fn(uow)
            except TimeoutError as exc:
                await self._rollback(session)
                msg = f"transaction exceeded {self._timeout}s"
                raise TransactionError(msg) from exc
            except BaseException:
                # Includes CancelledError: never leave the transaction open.
                await self._rollback(session)
                raise
            finally:
                uow.close()

            try:
                await session.commit()
            except SQLAlchemyError as exc:
                logger.exception("Transaction commit failed")
                await self._rollback(session)
                msg = "failed to commit transaction"
                raise TransactionError(msg) from exc
            return result

    @asynccontextmanager
    async def unscoped(self) -> AsyncIterator[UnitOfWork]:
        """Yield a unit of work for reads; nothing is committed."""
        async with self._session_factory() as session:
            uow = UnitOfWork(session)
            try:
                yield uow
            finally:
                uow.close()
                await self._rollback(session)

    async def _begin(self, session: AsyncSession) -> None:
        try:
            await session.begin()
            # Force connection checkout so BEGIN failures surface here.
            await session.connection()
            statement = self._isolation_level.sql
            if statement is not None:
                await session.execute(text(statement))
        except SQLAlchemyError as exc:
            logger.exception("Unable to begin transaction (isolation={})", self._isolation_level)
            await self._rollback(session)
            msg = "failed to begin transaction"
            raise TransactionError(msg) from exc

    @staticmethod
    async def _rollback(session: AsyncSession) -> None:
        """Roll back, logging instead of raising so the original error survives."""
        try:
            await session.rollback()
        except Exception:
            logger.exception("Transaction rollback failed")
