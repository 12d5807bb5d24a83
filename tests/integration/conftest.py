"""
Integration test fixtures. Overrides get_db for API tests with the in-memory DB
shared with the root conftest, so `course` / `exam_factory` data is visible to the app.
"""
import pytest
from sqlalchemy.orm import sessionmaker


@pytest.fixture
def override_get_db(in_memory_engine):
    """Session factory bound to the shared in-memory engine."""
    from api.config import Base
    import api.models.models  # noqa: F401
    Base.metadata.create_all(in_memory_engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=in_memory_engine)

    def _get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    return _get_db


@pytest.fixture
def api_client(override_get_db):
    """FastAPI TestClient with in-memory DB override. The context manager runs the app lifespan."""
    from fastapi.testclient import TestClient
    from api.api import app
    from api.config import get_db
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def teacher_headers(course, auth_headers):
    return auth_headers(course.teacher.email)


@pytest.fixture
def student_headers(course, auth_headers):
    return auth_headers(course.student.email)


@pytest.fixture
def outsider_headers(course, auth_headers):
    return auth_headers(course.outsider.email)
