from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from app.core.config import DATABASE_URL, DB_ECHO, DB_POOL_SIZE, DB_MAX_OVERFLOW


def make_engine(url: str = DATABASE_URL, echo: bool = DB_ECHO) -> Engine:
    if url.startswith("sqlite"):
        eng = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            future=True,
        )

        # SQLite ignores FOREIGN KEY ... ON DELETE RESTRICT unless asked
        @event.listens_for(eng, "connect")
        def _sqlite_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return eng

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,  # drops dead connections automatically
        pool_size=DB_POOL_SIZE,
        max_overflow=DB_MAX_OVERFLOW,
        future=True,
    )


# ---------------------
# SQLAlchemy engine / session / Base
# ---------------------
engine = make_engine()

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
