"""
Database handle for the market observation tables.

The store is passed explicitly to whoever needs it. It wraps a SQLAlchemy
Engine, whose connection pool is shared by every write; each write is a
single INSERT in its own transaction.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import create_engine, func, insert, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from spread_arbitrage.utils import get_logger

from .schema import arbitrage_opportunities, market_snapshots, metadata

logger = get_logger(__name__)

# Connections kept open against server databases
DEFAULT_POOL_SIZE = 5


def create_store_engine(database_url: str, pool_size: int = DEFAULT_POOL_SIZE) -> Engine:
    """
    Create an Engine suited to the database URL.

    In-memory SQLite gets a single shared connection so that every thread
    sees the same database.
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        if url.database in (None, "", ":memory:"):
            return create_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_size=pool_size, pool_pre_ping=True)


class ObservationStore:
    """Writes and reads market snapshots and arbitrage opportunities."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_url(cls, database_url: str, **engine_kwargs) -> "ObservationStore":
        return cls(create_store_engine(database_url, **engine_kwargs))

    def create_schema(self) -> None:
        """Create both tables if they do not exist yet."""
        metadata.create_all(self.engine, checkfirst=True)
        logger.info(
            "Database tables 'arbitrage_opportunities' and 'market_snapshots' are ready"
        )

    def insert_snapshot(self, values: Dict[str, Any]) -> int:
        return self._insert(market_snapshots, values)

    def insert_opportunity(self, values: Dict[str, Any]) -> int:
        return self._insert(arbitrage_opportunities, values)

    def _insert(self, table, values: Dict[str, Any]) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(insert(table).values(**values))
            return result.inserted_primary_key[0]

    def recent_snapshots(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Most recent snapshots first."""
        return self._recent(market_snapshots, limit)

    def recent_opportunities(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Most recent opportunities first."""
        return self._recent(arbitrage_opportunities, limit)

    def _recent(self, table, limit: int) -> List[Dict[str, Any]]:
        query = select(table).order_by(table.c.id.desc()).limit(limit)
        with self.engine.connect() as conn:
            return [dict(row._mapping) for row in conn.execute(query)]

    def count(self, table_name: str) -> int:
        table = metadata.tables[table_name]
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(table)).scalar_one()

    def dispose(self) -> None:
        self.engine.dispose()


def open_store(database_url: Optional[str]) -> Optional[ObservationStore]:
    """
    Connect to the store and make sure the schema exists.

    Returns None, after logging a warning, when no URL is configured or the
    database cannot be reached. Recording is then disabled for the run.
    """
    if not database_url:
        logger.warning("DATABASE_URL not set, market observations will not be recorded")
        return None

    try:
        store = ObservationStore.from_url(database_url)
        store.create_schema()
    except (SQLAlchemyError, ImportError, ValueError) as e:
        logger.warning(f"Could not connect to database: {e}")
        return None
    return store
