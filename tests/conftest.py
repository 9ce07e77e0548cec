import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from app.database import Base
import app.models  # noqa
from app.models.user import User, Department
from app.services.authorization import seed_default_permissions


TEST_DB_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db():
    engine = create_engine(TEST_DB_URL, connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(engine)


def _create_user(db, username: str, role: str, department: Department | None = None) -> User:
    user = User(
        username=username,
        email=f"{username}@school.test",
        full_name=username.replace("_", " ").title(),
        role=role,
        department_id=department.id if department else None,
    )
    db.add(user)
    return user


@pytest.fixture
def people(db):
    """Permission matrix plus one user per role, keyed by a short name."""
    seed_default_permissions(db)
    science = Department(code="SCI", name="Science")
    it = Department(code="IT", name="IT Services")
    db.add_all([science, it])
    db.flush()

    users = {
        "admin": _create_user(db, "admin", "admin", it),
        "tech": _create_user(db, "tech", "technician", it),
        "head": _create_user(db, "sci_head", "department_head", science),
        "it_head": _create_user(db, "it_head", "department_head", it),
        "director": _create_user(db, "director", "director"),
        "store": _create_user(db, "storekeeper", "storekeeper"),
        "teacher": _create_user(db, "teacher", "user", science),
        "teacher2": _create_user(db, "teacher_two", "user", science),
    }
    db.commit()
    return users
