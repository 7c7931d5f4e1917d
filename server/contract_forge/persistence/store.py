# ─────────────────────────────────────────────────────────────────────────────
# Contract Store — SQLAlchemy-backed PersistenceGateway
# ─────────────────────────────────────────────────────────────────────────────
# The SQLAlchemy engine is synchronous, so every database call is wrapped
# in run_in_executor to avoid blocking the event loop.
# ─────────────────────────────────────────────────────────────────────────────


import asyncio
from collections.abc import Callable
from typing import TypeVar

import structlog
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from contract_forge.exceptions import PersistenceError
from contract_forge.persistence.gateway import CommitGate
from contract_forge.persistence.models import Base, GeneratedContract, User

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class SqlContractStore:
    """PersistenceGateway over a relational database (SQLite by default)."""

    def __init__(self, database_url: str):
        self._database_url = database_url
        self._engine: Engine | None = None
        self._sessions: sessionmaker[Session] | None = None

    async def connect(self) -> None:
        """Create the engine and tables. Async wrapper around sync SQLAlchemy."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._connect_sync)

    def _connect_sync(self) -> None:
        connect_args = {}
        if self._database_url.startswith("sqlite"):
            # Sessions are opened from executor threads.
            connect_args["check_same_thread"] = False
        engine = create_engine(self._database_url, connect_args=connect_args)
        Base.metadata.create_all(engine)
        self._engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)
        logger.info("contract_store_connected", url=engine.url.render_as_string())

    async def disconnect(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._sessions = None
            logger.info("contract_store_disconnected")

    @property
    def is_connected(self) -> bool:
        return self._sessions is not None

    # ── Gateway operations ───────────────────────────────────────────────────

    async def ensure_user(self, user_id: str | None) -> User:
        if not user_id:
            raise PersistenceError("resolve user", "userId is missing")
        return await self._run("resolve user", self._ensure_user_sync, user_id)

    async def record_contract(
        self,
        name: str,
        source_code: str,
        user_id: str,
        gate: CommitGate | None = None,
    ) -> GeneratedContract:
        return await self._run(
            "record contract",
            self._record_contract_sync,
            name,
            source_code,
            user_id,
            gate or CommitGate(),
        )

    # ── Sync implementations (executor threads) ─────────────────────────────

    def _ensure_user_sync(self, user_id: str) -> User:
        with self._session() as session:
            user = session.get(User, user_id)
            if user is not None:
                return user
            user = User(id=user_id)
            session.add(user)
            try:
                session.commit()
            except IntegrityError:
                # Created concurrently by another request.
                session.rollback()
                return session.get(User, user_id)
            logger.info("user_created", user_id=user_id)
            return user

    def _record_contract_sync(
        self, name: str, source_code: str, user_id: str, gate: CommitGate
    ) -> GeneratedContract:
        with self._session() as session:
            record = GeneratedContract(name=name, source_code=source_code, user_id=user_id)
            session.add(record)
            session.flush()
            if not gate.commit(session.commit):
                # The request gave up while this thread was still writing.
                session.rollback()
                logger.warning("contract_record_discarded", user_id=user_id)
                raise PersistenceError("record contract", "request was aborted")
            return record

    def _session(self) -> Session:
        if self._sessions is None:
            raise PersistenceError("open session", "contract store is not connected")
        return self._sessions()

    async def _run(self, operation: str, fn: Callable[..., T], *args: object) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, fn, *args)
        except SQLAlchemyError as e:
            logger.error("contract_store_error", operation=operation, error=str(e))
            raise PersistenceError(operation, str(e)) from e
