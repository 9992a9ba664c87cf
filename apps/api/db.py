# apps/api/db.py
from sqlalchemy import create_engine, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import sessionmaker
from config import settings

engine = create_engine(settings.database_url, pool_pre_ping=True, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        # uncommitted writes of a failed request are discarded
        db.rollback()
        raise
    finally:
        db.close()


def upsert_insert(db):
    """Dialect insert() that supports ON CONFLICT for the session's backend."""
    name = db.get_bind().dialect.name
    try:
        return _UPSERT_INSERTS[name]
    except KeyError:
        raise RuntimeError(f"ON CONFLICT inserts are not supported on {name}")


def healthcheck():
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
