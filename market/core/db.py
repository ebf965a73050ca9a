from typing import AsyncGenerator
from sqlalchemy import BigInteger, Integer, event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import NullPool
from market.core.config import DATABASE_URL, DB_TYPE, DB_ECHO
import ssl

Base = declarative_base()

# 64-bit ids on Postgres; SQLite only autoincrements INTEGER primary keys
BigId = BigInteger().with_variant(Integer, "sqlite")

if DB_TYPE == "postgres":
    # SSL setup for hosted Postgres
    ssl_ctx = ssl.create_default_context()
    ssl_ctx.check_hostname = False
    ssl_ctx.verify_mode = ssl.CERT_NONE

    engine = create_async_engine(
        DATABASE_URL,
        echo=DB_ECHO,
        future=True,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        connect_args={
            # Disable prepared statements (PgBouncer)
            "statement_cache_size": 0,
            "prepared_statement_cache_size": 0,
            "ssl": ssl_ctx,
        },
    )
else:
    engine = create_async_engine(
        DATABASE_URL,
        echo=DB_ECHO,
        future=True,
        poolclass=NullPool,
    )

AsyncSessionLocal = sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request; closing it rolls back anything left uncommitted
    and returns the connection to the pool.
    """
    async with AsyncSessionLocal() as session:
        yield session


# SQLite foreign key enforcement
if DB_TYPE == "sqlite":
    @event.listens_for(engine.sync_engine, "connect")
    def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

import market.models  # noqa: E402,F401


# Auto-create tables (dev)
async def init_models():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
