import os

# settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DB_SCHEMA"] = ""
os.environ["AUTO_CREATE_TABLES"] = "0"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from halaqah_monitor import models
from halaqah_monitor.db import Base, get_db
from halaqah_monitor.main import app
from halaqah_monitor.security import hash_password


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(eng, "connect")
    def _enable_fk(dbapi_conn, _):
        dbapi_conn.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(engine):
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    def _get_db():
        session = Session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def school(db):
    """Coordinator, two teachers, two classes with three halaqah between them."""
    coord = models.User(id="u-coord", name="Koordinator Tahfizh", email="koordinator@sdq.com",
                        password=hash_password("password123"), role="Koordinator")
    t1 = models.User(id="u-t1", name="Ustadzah Chairunnisa", email="chairunnisa@sdq.com",
                     password=hash_password("password123"), role="Guru")
    t2 = models.User(id="u-t2", name="Ustadz Dafa", email="dafa@sdq.com",
                     password=hash_password("password123"), role="Guru")
    k1 = models.SchoolClass(id="k1", name="Kelas 1 Abdullah ibnu Mas'ud", short_name="Ikhwan • Kelas 1", gender="Ikhwan")
    k2 = models.SchoolClass(id="k2", name="Kelas 2 Zaid bin Tsabit", short_name="Ikhwan • Kelas 2", gender="Ikhwan")
    h1 = models.Halaqah(id="k1-h1", class_id="k1", name="Halaqah 1", teacher_id="u-t1", student_count=12)
    h2 = models.Halaqah(id="k1-h2", class_id="k1", name="Halaqah 2", teacher_id="u-t2", student_count=11)
    h3 = models.Halaqah(id="k2-h1", class_id="k2", name="Halaqah 1", teacher_id="u-t2", student_count=10)
    db.add_all([coord, t1, t2, k1, k2])
    db.flush()
    db.add_all([h1, h2, h3])
    db.commit()
    return {"coord": coord.id, "t1": t1.id, "t2": t2.id, "halaqah": [h1.id, h2.id, h3.id]}
