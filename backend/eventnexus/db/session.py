from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
import importlib.util
from eventnexus.core.config import settings

def resolve_database_url(url: str, psycopg2_present: bool | None = None) -> str:
    """A plain 'postgresql://' (or legacy 'postgres://') URL makes SQLAlchemy load psycopg2.
    We ship psycopg v3 only, so inject the 'psycopg' driver when psycopg2 is absent.
    Shared by the app engine and alembic migrations."""
    if psycopg2_present is None:
        psycopg2_present = importlib.util.find_spec("psycopg2") is not None
    if psycopg2_present or not url.startswith(("postgres://", "postgresql://")):
        return url
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url.replace("postgresql://", "postgresql+psycopg://", 1)


if not settings.database_url:
    raise RuntimeError("DATABASE_URL environment variable must be set")
SQLALCHEMY_DATABASE_URL = resolve_database_url(settings.database_url)

connect_args: dict = {}
if SQLALCHEMY_DATABASE_URL.startswith("sqlite"):
    # Request handlers run in a threadpool; each Session still owns its own connection.
    connect_args = {"check_same_thread": False, "timeout": 15}
elif SQLALCHEMY_DATABASE_URL.startswith("postgresql") and settings.db_statement_timeout_ms > 0:
    # A store call that exceeds this surfaces as DATABASE_ERROR ("outcome unknown") to scanners.
    connect_args = {"options": f"-c statement_timeout={settings.db_statement_timeout_ms}"}

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
