"""SQLAlchemy Core table definitions for market observations.

Column names and types match the PostgreSQL tables the recorder has always
written to. Timestamps are assigned by the database clock.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    false,
    func,
)

metadata = MetaData()

# Numeric(20, 8) is DECIMAL(20, 8) on PostgreSQL
PRICE = Numeric(20, 8, asdecimal=True)
PERCENT = Numeric(10, 4, asdecimal=True)

market_snapshots = Table(
    "market_snapshots",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("dex_a", String(50), nullable=False),
    Column("dex_b", String(50), nullable=False),
    Column("token_a", String(42), nullable=False),
    Column("token_b", String(42), nullable=False),
    Column("dex_a_price", PRICE, nullable=False),
    Column("dex_b_price", PRICE, nullable=False),
    Column("price_difference", PRICE, nullable=False),
    Column("price_difference_percent", PERCENT, nullable=False),
    Column("trade_amount", PRICE, nullable=False),
    Column("gas_cost", PRICE, nullable=False),
    Column("potential_profit", PRICE, nullable=True),
    Column("is_arbitrage", Boolean, nullable=False, server_default=false()),
    Column("snapshot_at", DateTime(timezone=True), server_default=func.now()),
    # ids are never reused after deletes on SQLite either
    sqlite_autoincrement=True,
)

arbitrage_opportunities = Table(
    "arbitrage_opportunities",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("dex_a", String(50), nullable=False),
    Column("dex_b", String(50), nullable=False),
    Column("token_a", String(42), nullable=False),
    Column("token_b", String(42), nullable=False),
    Column("price_a", PRICE, nullable=False),
    Column("price_b", PRICE, nullable=False),
    Column("profit", PRICE, nullable=False),
    Column("detected_at", DateTime(timezone=True), server_default=func.now()),
    sqlite_autoincrement=True,
)
