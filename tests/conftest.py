"""
Pytest configuration and shared fixtures for the test suite.
Ensures proper Python path and provides common fixtures for unit and integration tests.
"""
import os
import sys
import tempfile
from pathlib import Path
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Keep the app's own engine and log files out of the working tree.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_DIR", str(Path(tempfile.gettempdir()) / "lms-test-logs"))

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


# ----- In-memory DB (for tests that need DB without touching real DB) -----
@pytest.fixture
def in_memory_engine():
    """In-memory SQLite engine; StaticPool so every session sees the same database."""
    return create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture
def db_session(in_memory_engine):
    """Create an in-memory database session. Uses api.config.Base for schema."""
    from api.config import Base
    import api.models.models  # noqa: F401
    Base.metadata.create_all(in_memory_engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=in_memory_engine)
    session = SessionLocal()
    yield session
    session.close()


def seed_course(db):
    """
    One teacher, one enrolled student and one outsider, and a subject with:
      module 1 (published): 3 published chapters + 1 unpublished chapter
      module 2 (published): 2 published chapters
      module 3 (unpublished): 1 published chapter
    """
    from api.models import Chapter, Enrollment, Module, Subject, User

    teacher = User(id="teacher-1", email="teacher@example.com", full_name="Ana Teacher", role="teacher")
    student = User(id="student-1", email="student@example.com", full_name="Sam Student", role="student")
    outsider = User(id="student-2", email="outsider@example.com", full_name="Olga Outsider", role="student")
    subject = Subject(id="subject-1", name="Matemáticas", code="MAT-101", teacher_id=teacher.id)
    db.add_all([teacher, student, outsider, subject])

    m1 = Module(id="module-1", subject_id=subject.id, title="Números", order_index=1, is_published=True)
    m2 = Module(id="module-2", subject_id=subject.id, title="Álgebra", order_index=2, is_published=True)
    m3 = Module(id="module-3", subject_id=subject.id, title="Borrador", order_index=3, is_published=False)
    db.add_all([m1, m2, m3])

    chapters = [
        Chapter(id="ch-1-1", module_id=m1.id, title="Naturales", order_index=1, is_published=True,
                video_url="https://videos.example.com/naturales.mp4"),
        Chapter(id="ch-1-2", module_id=m1.id, title="Enteros", order_index=2, is_published=True,
                content_url="https://files.example.com/enteros.pdf"),
        Chapter(id="ch-1-3", module_id=m1.id, title="Racionales", order_index=3, is_published=True,
                content_url="https://files.example.com/racionales.html"),
        Chapter(id="ch-1-draft", module_id=m1.id, title="Reales", order_index=4, is_published=False),
        Chapter(id="ch-2-1", module_id=m2.id, title="Expresiones", order_index=1, is_published=True),
        Chapter(id="ch-2-2", module_id=m2.id, title="Ecuaciones", order_index=2, is_published=True),
        Chapter(id="ch-3-1", module_id=m3.id, title="Pendiente", order_index=1, is_published=True),
    ]
    db.add_all(chapters)
    db.add(Enrollment(id="enrollment-1", student_id=student.id, subject_id=subject.id))
    db.commit()
    return SimpleNamespace(
        teacher=teacher,
        student=student,
        outsider=outsider,
        subject=subject,
        modules=[m1, m2, m3],
        published_chapter_ids=["ch-1-1", "ch-1-2", "ch-1-3", "ch-2-1", "ch-2-2"],
    )


@pytest.fixture
def course(db_session):
    """Seeded subject with published and unpublished content."""
    return seed_course(db_session)


def make_exam(db, module_id="module-1", exam_id="exam-1", correct=("a", "a", "a", "a")):
    """
    Persist an exam with one multiple-choice question per entry in `correct`.
    Options of question n have ids q{n}-a .. q{n}-d; the named one is correct.
    """
    from api.models import Exam, Option, Question

    exam = Exam(id=exam_id, module_id=module_id, title="Evaluación")
    for n, letter in enumerate(correct, start=1):
        question = Question(id=f"{exam_id}-q{n}", text=f"Pregunta {n}", question_type="multiple_choice", position=n)
        question.options = [
            Option(id=f"{exam_id}-q{n}-{opt}", text=f"Opción {opt}", is_correct=(opt == letter), position=pos)
            for pos, opt in enumerate("abcd")
        ]
        exam.questions.append(question)
    db.add(exam)
    db.commit()
    db.refresh(exam)
    return exam


def auth_header(email: str) -> dict:
    from api.schemas.auth_schemas import AuthTokenPayload
    from api.utils.jwt import create_access_token
    return {"Authorization": f"Bearer {create_access_token(AuthTokenPayload(sub=email))}"}


@pytest.fixture
def exam_factory():
    """make_exam as a fixture: exam_factory(db, module_id=..., exam_id=..., correct=...)."""
    return make_exam


@pytest.fixture
def auth_headers():
    """auth_headers(email) -> Authorization header carrying a freshly signed access token."""
    return auth_header
