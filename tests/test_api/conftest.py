import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from app.main import app
from app.database import Base, get_db
from app.models.user import User, Department
from app.services.authorization import seed_default_permissions

TEST_DB_URL = "sqlite:///:memory:"

# name -> (role, department code)
USERS = {
    "admin": ("admin", "IT"),
    "tech": ("technician", "IT"),
    "head": ("department_head", "SCI"),
    "director": ("director", None),
    "store": ("storekeeper", None),
    "teacher": ("user", "SCI"),
    "teacher2": ("user", "SCI"),
}


@pytest.fixture(scope="function")
def session_factory():
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # Ensure all connections share same in-memory DB
    )
    Base.metadata.create_all(engine)
    TestSession = sessionmaker(bind=engine)
    yield TestSession
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def user_ids(session_factory):
    """Permission matrix and one user per role; returns name -> user id."""
    db = session_factory()
    seed_default_permissions(db)
    departments = {code: Department(code=code, name=code) for code in ("IT", "SCI")}
    db.add_all(departments.values())
    db.flush()
    users = {}
    for name, (role, dept) in USERS.items():
        users[name] = User(
            username=name,
            email=f"{name}@school.test",
            role=role,
            department_id=departments[dept].id if dept else None,
        )
    db.add_all(users.values())
    db.commit()
    ids = {name: user.id for name, user in users.items()}
    db.close()
    return ids


@pytest.fixture(scope="function")
def as_user(user_ids):
    """``as_user("tech")`` -> headers identifying that user."""
    def headers(name: str) -> dict[str, str]:
        return {"X-User-Id": str(user_ids[name])}
    return headers


@pytest.fixture(scope="function")
def client(session_factory, user_ids):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
