"""
API data models. Single import surface for DB entities.

Content structure (owned by content management):
- User, Subject, Enrollment, Module, Chapter

Assessment and progress:
- Exam, Question, Option, ExamResult, ChapterProgress
"""

from api.models.models import (
    User,
    Subject,
    Enrollment,
    Module,
    Chapter,
    Exam,
    Question,
    Option,
    ExamResult,
    ChapterProgress,
)

__all__ = [
    "User",
    "Subject",
    "Enrollment",
    "Module",
    "Chapter",
    "Exam",
    "Question",
    "Option",
    "ExamResult",
    "ChapterProgress",
]
