from halaqah_monitor.db import engine_options


def test_sqlite_connections_cross_threads():
    assert engine_options("sqlite://") == {"connect_args": {"check_same_thread": False}}


def test_local_postgres_without_ssl():
    options = engine_options("postgresql+psycopg2://postgres:postgres@db:5432/halaqah")
    assert options == {"pool_pre_ping": True, "connect_args": {}}


def test_hosted_postgres_requires_ssl():
    options = engine_options("postgresql://user:pw@db.abcd.supabase.co:5432/postgres")
    assert options["connect_args"] == {"sslmode": "require"}


def test_explicit_sslmode_is_honoured():
    options = engine_options("postgresql://user:pw@10.0.0.5/halaqah?sslmode=require")
    assert options["connect_args"] == {"sslmode": "require"}
