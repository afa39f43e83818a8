"""SQL backend for auditchain (PostgreSQL or SQLite through SQLAlchemy)."""

import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import logging

from sqlalchemy import (
    Column, DateTime, Index, Integer, MetaData, String, Table, Text,
    create_engine, make_url,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .base import LedgerStore, Row
from ..core.exceptions import ChainConflictError, StorageError

logger = logging.getLogger(__name__)


class SQLLedgerStore(LedgerStore):
    """Relational storage backend for auditchain.

    One table holds every tenant and entity; chains are separated purely by
    the ``entity_type``/``entity_id`` predicates. ``seq`` is an insertion
    counter used to order rows sharing a ``created_at`` value.
    """

    def __init__(
        self,
        connection_string: str,
        table_name: str = "audit_logs",
        pool_size: int = 5,
        max_overflow: int = 10,
        create_schema: bool = True,
        **kwargs
    ):
        super().__init__(**kwargs)

        self.connection_string = connection_string
        self.table_name = table_name

        self._setup_sqlalchemy(pool_size, max_overflow)

        if create_schema:
            self.create_schema()

    def _setup_sqlalchemy(self, pool_size: int, max_overflow: int):
        """Setup SQLAlchemy engine and metadata."""
        url = make_url(self.connection_string)
        engine_kwargs: Dict[str, Any] = {"pool_pre_ping": True}
        if url.get_backend_name() != "sqlite":
            engine_kwargs.update(pool_size=pool_size, max_overflow=max_overflow)
        self._engine = create_engine(url, **engine_kwargs)

        self._metadata = MetaData()
        indexes = [
            Index(f"idx_{self.table_name}_entity", "entity_type", "entity_id", "created_at"),
            Index(f"idx_{self.table_name}_tenant", "tenant_id", "created_at"),
        ]
        if self.guard_forks:
            # Two rows of one entity sharing a predecessor is a fork.
            indexes.append(Index(
                f"uq_{self.table_name}_chain_link",
                "entity_type", "entity_id", "prev_hash",
                unique=True,
            ))
        self._table = Table(
            self.table_name,
            self._metadata,
            Column("seq", Integer, primary_key=True, autoincrement=True),
            Column("id", String(36), nullable=False, unique=True),
            Column("tenant_id", String(255), nullable=False),
            Column("entity_type", String(100), nullable=False),
            Column("entity_id", String(255), nullable=False),
            Column("action", String(50), nullable=False),
            Column("data", Text, nullable=False),
            Column("prev_hash", String(64), nullable=False, default=""),
            Column("hash", String(64), nullable=False),
            Column("created_at", DateTime(timezone=True), nullable=False),
            *indexes,
        )

    @property
    def engine(self):
        return self._engine

    @property
    def table(self):
        return self._table

    def create_schema(self) -> None:
        """Create table and indexes.

        ``create_all`` skips indexes of a table that already exists, so each
        index is created on its own. Enabling ``guard_forks`` on an existing
        table fails here if that table already holds a fork.
        """
        with self._engine.begin() as conn:
            self._metadata.create_all(conn)
            for index in self._table.indexes:
                index.create(conn, checkfirst=True)

    async def insert(self, row: Row) -> Row:
        return await self._run(self._insert, row)

    async def select_by_entity(self, entity_type: str, entity_id: str) -> List[Row]:
        return await self._run(self._select_by_entity, entity_type, entity_id)

    async def select_tip(self, entity_type: str, entity_id: str) -> Optional[Row]:
        return await self._run(self._select_tip, entity_type, entity_id)

    async def select_by_tenant(
        self,
        tenant_id: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        action: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        return await self._run(
            self._select_by_tenant,
            tenant_id,
            entity_type,
            entity_id,
            action,
            date_from,
            date_to,
            limit,
        )

    async def close(self) -> None:
        """Close database connections."""
        self._engine.dispose()

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking engine call in the default executor."""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, func, *args)

    def _insert(self, row: Row) -> Row:
        stored = self._stamp(row)
        try:
            with self._engine.begin() as conn:
                if self.guard_forks:
                    tip = conn.execute(
                        self._entity_query(row["entity_type"], row["entity_id"], newest_first=True).limit(1)
                    ).first()
                    self._check_tip(self._row_to_dict(tip) if tip else None, stored)
                conn.execute(self._table.insert().values(**stored))
        except IntegrityError as e:
            if self.guard_forks:
                raise ChainConflictError(
                    row["entity_type"],
                    row["entity_id"],
                    None,
                    stored["prev_hash"],
                    self.name,
                ) from e
            raise StorageError(f"Failed to append entry: {e}", "insert", self.name) from e
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to append entry: {e}", "insert", self.name) from e
        logger.debug(f"Inserted row {stored['id']} into {self.table_name}")
        return stored

    def _select_by_entity(self, entity_type: str, entity_id: str) -> List[Row]:
        try:
            with self._engine.connect() as conn:
                result = conn.execute(self._entity_query(entity_type, entity_id))
                return [self._row_to_dict(r) for r in result]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read history: {e}", "select", self.name) from e

    def _select_tip(self, entity_type: str, entity_id: str) -> Optional[Row]:
        try:
            with self._engine.connect() as conn:
                result = conn.execute(
                    self._entity_query(entity_type, entity_id, newest_first=True).limit(1)
                ).first()
                return self._row_to_dict(result) if result else None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read chain tip: {e}", "select", self.name) from e

    def _select_by_tenant(
        self,
        tenant_id: str,
        entity_type: Optional[str],
        entity_id: Optional[str],
        action: Optional[str],
        date_from: Optional[datetime],
        date_to: Optional[datetime],
        limit: Optional[int],
    ) -> List[Row]:
        c = self._table.c
        query = self._table.select().where(c.tenant_id == tenant_id)

        if entity_type:
            query = query.where(c.entity_type == entity_type)
        if entity_id:
            query = query.where(c.entity_id == entity_id)
        if action:
            query = query.where(c.action == action)
        if date_from:
            query = query.where(c.created_at >= date_from)
        if date_to:
            query = query.where(c.created_at <= date_to)

        query = query.order_by(c.created_at.desc(), c.seq.desc())

        if limit:
            query = query.limit(limit)

        try:
            with self._engine.connect() as conn:
                return [self._row_to_dict(r) for r in conn.execute(query)]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to query entries: {e}", "select", self.name) from e

    def _entity_query(self, entity_type: str, entity_id: str, newest_first: bool = False):
        c = self._table.c
        query = self._table.select().where(
            c.entity_type == entity_type,
            c.entity_id == entity_id,
        )
        if newest_first:
            return query.order_by(c.created_at.desc(), c.seq.desc())
        return query.order_by(c.created_at.asc(), c.seq.asc())

    def _row_to_dict(self, row) -> Row:
        """Convert database row to dictionary."""
        result = dict(row._mapping)
        result.pop("seq", None)
        return result
