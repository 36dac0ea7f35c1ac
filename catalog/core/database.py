"""
Database setup with SQLAlchemy 2.0.
Provides connection pooling, session management, and base model.
"""
from typing import Generator
from contextlib import contextmanager
from pathlib import Path
from datetime import datetime, timezone

from sqlalchemy import create_engine, Engine, MetaData, DateTime, func, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker, Session
from sqlalchemy.pool import StaticPool, QueuePool

from catalog.core.config import settings


# Naming convention for constraints
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}

metadata = MetaData(naming_convention=NAMING_CONVENTION)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""
    metadata = metadata

    # Common columns for all tables
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False
    )


# Global engine and session factory
engine: Engine | None = None
SessionLocal: sessionmaker[Session] | None = None


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine with a pool suited to the database backend."""
    if database_url.startswith("sqlite"):
        # SQLite: one shared connection for in-memory databases
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            return create_engine(
                database_url,
                echo=echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False}
            )
        db_path = database_url.split("///", 1)[-1]
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False}
        )

    # PostgreSQL with connection pooling
    return create_engine(
        database_url,
        echo=echo,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        poolclass=QueuePool,
        pool_pre_ping=True,  # Verify connections before using
        pool_recycle=3600,   # Recycle connections after 1 hour
    )


def get_engine() -> Engine:
    """Get or create the database engine."""
    global engine

    if engine is None:
        engine = build_engine(settings.database_url, echo=settings.db_echo)

    return engine


def get_session_factory() -> sessionmaker[Session]:
    """Get or create the session factory."""
    global SessionLocal

    if SessionLocal is None:
        SessionLocal = sessionmaker(
            bind=get_engine(),
            class_=Session,
            expire_on_commit=False,
            autoflush=False
        )

    return SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for FastAPI endpoints.
    Provides a database session and ensures proper cleanup.

    Usage:
        @router.get("/items")
        def get_items(db: Session = Depends(get_db)):
            return db.scalars(select(Item)).all()
    """
    session_factory = get_session_factory()
    with session_factory() as session:
        try:
            yield session
        except Exception:
            session.rollback()
            raise


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of a request.

    Usage:
        with get_db_context() as db:
            products = db.scalars(select(Product)).all()
    """
    session_factory = get_session_factory()
    with session_factory() as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise


def init_db() -> None:
    """Initialize database tables. Use Alembic in production."""
    # Import all models to ensure they're registered
    from catalog.models import product, history  # noqa: F401

    Base.metadata.create_all(bind=get_engine())


def close_db() -> None:
    """Close database connections."""
    global engine, SessionLocal

    if engine is not None:
        engine.dispose()
        engine = None

    SessionLocal = None


def check_db_connection() -> bool:
    """Health check for database connection."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
