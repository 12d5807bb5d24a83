from api.config import Base
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Boolean, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

class User(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True, index=True)  # uuid
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    role = Column(String, nullable=False, default="student")  # admin|teacher|student
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Subject(Base):
    __tablename__ = "subjects"
    id = Column(String, primary_key=True, index=True)  # uuid
    name = Column(String, nullable=False)
    code = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    teacher_id = Column(String, ForeignKey("users.id"), index=True, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    teacher = relationship("User", foreign_keys=[teacher_id])
    modules = relationship(
        "Module",
        backref="subject",
        cascade="all, delete-orphan",
        order_by="Module.order_index",
    )


class Enrollment(Base):
    __tablename__ = "enrollments"
    __table_args__ = (UniqueConstraint("student_id", "subject_id", name="uq_enrollment_student_subject"),)
    id = Column(String, primary_key=True, index=True)  # uuid
    student_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    subject_id = Column(String, ForeignKey("subjects.id"), index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    subject = relationship("Subject", foreign_keys=[subject_id])


class Module(Base):
    __tablename__ = "modules"
    id = Column(String, primary_key=True, index=True)  # uuid
    subject_id = Column(String, ForeignKey("subjects.id"), index=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    order_index = Column(Integer, nullable=False)
    is_published = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    chapters = relationship(
        "Chapter",
        backref="module",
        cascade="all, delete-orphan",
        order_by="Chapter.order_index",
    )
    exam = relationship("Exam", backref="module", uselist=False, cascade="all, delete-orphan")


class Chapter(Base):
    __tablename__ = "chapters"
    id = Column(String, primary_key=True, index=True)  # uuid
    module_id = Column(String, ForeignKey("modules.id"), index=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    order_index = Column(Integer, nullable=False)
    is_published = Column(Boolean, default=False, nullable=False)
    video_url = Column(String, nullable=True)
    content_url = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Exam(Base):
    __tablename__ = "exams"
    id = Column(String, primary_key=True, index=True)  # uuid
    # One exam per module; a second insert fails at the store.
    module_id = Column(String, ForeignKey("modules.id"), unique=True, index=True, nullable=False)
    title = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    questions = relationship(
        "Question",
        backref="exam",
        cascade="all, delete-orphan",
        order_by="Question.position",
    )
    results = relationship("ExamResult", backref="exam", cascade="all, delete-orphan")


class Question(Base):
    __tablename__ = "exam_questions"
    id = Column(String, primary_key=True, index=True)  # uuid
    exam_id = Column(String, ForeignKey("exams.id"), index=True, nullable=False)
    text = Column(Text, nullable=False)
    question_type = Column(String, nullable=False)  # multiple_choice|true_false
    position = Column(Integer, nullable=False)

    options = relationship(
        "Option",
        backref="question",
        cascade="all, delete-orphan",
        order_by="Option.position",
    )


class Option(Base):
    __tablename__ = "exam_options"
    id = Column(String, primary_key=True, index=True)  # uuid
    question_id = Column(String, ForeignKey("exam_questions.id"), index=True, nullable=False)
    text = Column(String, nullable=False)
    is_correct = Column(Boolean, default=False, nullable=False)
    position = Column(Integer, nullable=False)


class ExamResult(Base):
    __tablename__ = "exam_results"
    id = Column(String, primary_key=True, index=True)  # uuid
    exam_id = Column(String, ForeignKey("exams.id"), index=True, nullable=False)
    student_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    score = Column(Integer, nullable=False)
    correct_answers = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    passed = Column(Boolean, nullable=False)
    answers = Column(JSON, nullable=False)  # list of {question_id, option_id}
    submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    student = relationship("User", foreign_keys=[student_id])


class ChapterProgress(Base):
    __tablename__ = "chapter_progress"
    __table_args__ = (UniqueConstraint("student_id", "chapter_id", name="uq_chapter_progress_student_chapter"),)
    id = Column(String, primary_key=True, index=True)  # uuid
    student_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    chapter_id = Column(String, ForeignKey("chapters.id"), index=True, nullable=False)
    completed = Column(Boolean, default=True, nullable=False)
    completed_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    chapter = relationship("Chapter", foreign_keys=[chapter_id])
