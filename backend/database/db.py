from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from typing import AsyncGenerator
from config.settings import settings
import logging

logger = logging.getLogger(__name__)

def _engine_options(database_url: str) -> dict:
    """
    Build engine keyword arguments for the configured backend.

    SQLite (used for local runs and tests) shares a single connection so an
    in-memory database survives across sessions; server databases get a pool.
    """
    if database_url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {
        "pool_size": 20,
        "max_overflow": 0,
        "pool_pre_ping": True,  # Test connections before using
    }

# Create database engine
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,  # Set to True for SQL query logging
    **_engine_options(settings.DATABASE_URL),
)

# Create session factory
SessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)

# Base class for all database models
Base = declarative_base()

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function to get database session.
    Used in FastAPI route handlers.

    Example:
        @app.get("/movies")
        async def read_movies(db: AsyncSession = Depends(get_db)):
            result = await db.execute(select(Movie))
            return result.scalars().all()
    """
    async with SessionLocal() as db:
        try:
            yield db
        except SQLAlchemyError as e:
            logger.error(f"Database session error: {str(e)}")
            await db.rollback()
            raise

async def init_db():
    """
    Initialize database tables.
    Call this once at application startup.

    Creates all tables defined in models using SQLAlchemy ORM.
    """
    try:
        # Import all models to register them with Base
        from models.user import User
        from models.movie import Movie

        # Create all tables
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("✅ Database tables initialized successfully")
    except Exception as e:
        logger.error(f"❌ Failed to initialize database: {str(e)}")
        raise

async def drop_all_tables():
    """
    Drop all database tables.
    WARNING: This will delete all data. Use only in development!
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.warning("⚠️ All database tables dropped")
    except Exception as e:
        logger.error(f"❌ Failed to drop tables: {str(e)}")
        raise

async def reset_db():
    """
    Reset database: drop all tables and recreate them.
    WARNING: This will delete all data. Use only in development!
    """
    await drop_all_tables()
    await init_db()
    logger.info("✅ Database reset completed")

async def close_db():
    """
    Dispose of the engine's connection pool.
    Call this once at application shutdown.
    """
    await engine.dispose()
    logger.info("Database connections closed")
