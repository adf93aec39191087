"""SQLAlchemy-backed async units of work."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from scrapesync.adapters.sqlalchemy.mappings import create_all_tables
from scrapesync.adapters.sqlalchemy.repositories import SqlAlchemySiteRecordRepository
from scrapesync.config import get_database_config
from scrapesync.domain.model import DuplicateKeyError, StoreWriteError
from scrapesync.domain.ports import RecordRepositories, RepositoryCollection

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.ext.asyncio import AsyncEngine


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: AsyncEngine | None = None
    _session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine | None:
        return self._engine

    @engine.setter
    def engine(self, value: AsyncEngine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call scrapesync.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


async def startup(
    *,
    engine: AsyncEngine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the async engine, create missing tables and reset the session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_async_engine(database_uri or get_database_config().uri)
    await create_all_tables(resolved_engine)
    _STATE.engine = resolved_engine


def configured_engine() -> AsyncEngine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


async def shutdown() -> None:
    """Dispose the managed engine and reset state."""

    if _STATE.engine is not None:
        await _STATE.engine.dispose()
    _STATE.engine = None


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic async unit of work with pluggable repository collections."""

    def __init__(self) -> None:
        self.session_factory: async_sessionmaker[AsyncSession] = _STATE.session_factory
        self._session: AsyncSession | None = None
        self._repositories: TRepositories | None = None

    @abstractmethod
    def _build_repositories(self, session: AsyncSession) -> TRepositories: ...

    async def __aenter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None or session.in_transaction():
                await session.rollback()
        finally:
            await session.close()
            self.session = None
            self._repositories = None
        return False

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except IntegrityError as exc:
            raise DuplicateKeyError(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            raise StoreWriteError(str(exc)) from exc

    async def rollback(self) -> None:
        await self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: AsyncSession | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyUnitOfWork(BaseSqlAlchemyUnitOfWork[RecordRepositories]):
    """Unit of work managing async SQLAlchemy sessions for site records."""

    def _build_repositories(self, session: AsyncSession) -> RecordRepositories:
        return RecordRepositories(records=SqlAlchemySiteRecordRepository(session))


if TYPE_CHECKING:
    from scrapesync.domain.ports import RecordUnitOfWork

    _uow_check: RecordUnitOfWork = SqlAlchemyUnitOfWork()
