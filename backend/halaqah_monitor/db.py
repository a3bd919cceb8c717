# backend/halaqah_monitor/db.py
from urllib.parse import urlparse, parse_qs

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import settings

# hosted Postgres providers that refuse plain connections
HOSTED_PROVIDERS = ("supabase.co", "neon.tech", "neon.aws", "railway")


def _should_use_ssl(url: str) -> bool:
    parsed = urlparse(url)
    if not parsed.scheme.startswith("postgresql"):
        return False
    q = parse_qs(parsed.query or "")
    if any(v and v[0].lower() == "require" for v in q.get("sslmode", [])):
        return True
    host = (parsed.hostname or "").lower()
    return any(p in host for p in HOSTED_PROVIDERS)


def engine_options(url: str) -> dict:
    """Keyword arguments for create_engine, per database backend."""
    if url.startswith("sqlite"):
        # request handlers run in a threadpool; one SQLite connection crosses threads
        return {"connect_args": {"check_same_thread": False}}
    options = {"pool_pre_ping": True, "connect_args": {}}
    if _should_use_ssl(url):
        options["connect_args"] = {"sslmode": "require"}
    return options


engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    future=True,
    **engine_options(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

Base = declarative_base()
if settings.DB_SCHEMA:
    Base.metadata.schema = settings.DB_SCHEMA


def get_db():
    """One session per request, closed when the response is done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
