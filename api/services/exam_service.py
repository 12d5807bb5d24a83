"""
Exam store operations and the submission flow.

Authoring writes go through the ExamAuthoringValidator before touching the
database; submissions go through the "all answered" gate before reaching the
grading engine. Every write publishes the derived views it makes stale.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Hashable, Optional, Sequence
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.config import Settings, get_settings
from api.models.models import Enrollment, Exam, ExamResult, Module, Option, Question, Subject
from api.services.errors import (
    AttemptLimitReached,
    DraftInvalid,
    ExamConflict,
    ExamNotFound,
    IncompleteSubmission,
    ModuleNotFound,
    NotSubjectTeacher,
    SubmissionInProgress,
)
from api.services.exam_authoring import ExamAuthoringValidator, ExamDraft, NormalizedExam
from api.services.exam_grading import ExamGradingEngine, gradable_questions, is_complete_submission
from api.services.invalidation import InvalidationBus
from api.utils.logger import configure_logging

logger = configure_logging()


class InFlightGuard:
    """Allows at most one in-flight operation per key (e.g. (student, exam) for submits)."""

    def __init__(self):
        self._keys: set[Hashable] = set()

    def busy(self, key: Hashable) -> bool:
        return key in self._keys

    @asynccontextmanager
    async def hold(self, key: Hashable):
        if key in self._keys:
            raise SubmissionInProgress()
        self._keys.add(key)
        try:
            yield
        finally:
            self._keys.discard(key)


class ExamService:
    def __init__(
        self,
        db: Session,
        bus: Optional[InvalidationBus] = None,
        settings: Optional[Settings] = None,
        guard: Optional[InFlightGuard] = None,
    ):
        self.db = db
        self.bus = bus
        self.settings = settings or get_settings()
        self.guard = guard or InFlightGuard()
        self.validator = ExamAuthoringValidator()
        self.engine = ExamGradingEngine(self.settings.exam_pass_score)

    # ----- Authoring -----

    def check_author(self, user_id: str, role: str, module_id: str) -> None:
        """Exam writes belong to the subject's teacher or an admin."""
        row = (
            self.db.query(Subject.teacher_id)
            .join(Module, Module.subject_id == Subject.id)
            .filter(Module.id == module_id)
            .first()
        )
        if row is None:
            raise ModuleNotFound()
        if role != "admin" and row.teacher_id != user_id:
            raise NotSubjectTeacher()

    def create(self, draft: ExamDraft, module_id: str) -> Exam:
        if self.db.query(Module).filter(Module.id == module_id).first() is None:
            raise ModuleNotFound()
        self._check_draft(draft)
        if self.get_by_module(module_id) is not None:
            raise ExamConflict()

        normalized = draft.normalized()
        exam = Exam(id=str(uuid4()), module_id=module_id, title=normalized.title)
        self._write_questions(exam, normalized)
        self.db.add(exam)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ExamConflict()
        self.db.refresh(exam)
        logger.info("exam created exam=%s module=%s questions=%s", exam.id, module_id, len(exam.questions))
        self._publish(("exams",))
        return exam

    def update(self, exam_id: str, draft: ExamDraft) -> Exam:
        exam = self.get(exam_id)
        self._check_draft(draft)
        normalized = draft.normalized()
        exam.title = normalized.title
        exam.questions.clear()
        self.db.flush()
        self._write_questions(exam, normalized)
        exam.updated_at = datetime.utcnow()
        self.db.add(exam)
        self.db.commit()
        self.db.refresh(exam)
        logger.info("exam updated exam=%s questions=%s", exam.id, len(exam.questions))
        self._publish(("exams",))
        return exam

    def delete(self, exam_id: str) -> None:
        """Delete an exam together with its result history."""
        exam = self.get(exam_id)
        self.db.delete(exam)
        self.db.commit()
        logger.info("exam deleted exam=%s", exam_id)
        self._publish(("exams",), ("exam-results",))

    def _check_draft(self, draft: ExamDraft) -> None:
        problems = self.validator.problems(draft)
        if problems:
            raise DraftInvalid(problems)

    @staticmethod
    def _write_questions(exam: Exam, normalized: NormalizedExam) -> None:
        for qpos, q in enumerate(normalized.questions):
            question = Question(
                id=str(uuid4()),
                text=q.text,
                question_type=q.question_type.value,
                position=qpos,
            )
            question.options = [
                Option(id=str(uuid4()), text=o.text, is_correct=o.is_correct, position=opos)
                for opos, o in enumerate(q.options)
            ]
            exam.questions.append(question)

    # ----- Reads -----

    def get(self, exam_id: str) -> Exam:
        exam = self.db.query(Exam).filter(Exam.id == exam_id).first()
        if exam is None:
            raise ExamNotFound()
        return exam

    def get_by_module(self, module_id: str) -> Optional[Exam]:
        return self.db.query(Exam).filter(Exam.module_id == module_id).first()

    def list_by_subject(self, subject_id: str) -> list[Exam]:
        return (
            self.db.query(Exam)
            .join(Module, Module.id == Exam.module_id)
            .filter(Module.subject_id == subject_id)
            .order_by(Module.order_index.asc())
            .all()
        )

    def list_for_teacher(self, teacher_id: str) -> list[Exam]:
        return (
            self.db.query(Exam)
            .join(Module, Module.id == Exam.module_id)
            .join(Subject, Subject.id == Module.subject_id)
            .filter(Subject.teacher_id == teacher_id)
            .order_by(Subject.name.asc(), Module.order_index.asc())
            .all()
        )

    def _reachable_query(self, student_id: str):
        # Reachable: the owning module is published in a subject the student is enrolled in.
        return (
            self.db.query(Exam)
            .join(Module, Module.id == Exam.module_id)
            .join(Enrollment, Enrollment.subject_id == Module.subject_id)
            .filter(Enrollment.student_id == student_id, Module.is_published == True)  # noqa: E712
        )

    def list_available(self, student_id: str) -> list[Exam]:
        return self._reachable_query(student_id).order_by(Module.subject_id.asc(), Module.order_index.asc()).all()

    def is_available(self, student_id: str, exam_id: str) -> bool:
        return self._reachable_query(student_id).filter(Exam.id == exam_id).first() is not None

    def get_available(self, student_id: str, exam_id: str) -> Exam:
        exam = self._reachable_query(student_id).filter(Exam.id == exam_id).first()
        if exam is None:
            raise ExamNotFound()
        return exam

    def results_for_student(self, student_id: str) -> list[ExamResult]:
        return (
            self.db.query(ExamResult)
            .filter(ExamResult.student_id == student_id)
            .order_by(ExamResult.submitted_at.desc())
            .all()
        )

    def attempts_count(self, student_id: str, exam_id: str) -> int:
        return (
            self.db.query(ExamResult)
            .filter(ExamResult.student_id == student_id, ExamResult.exam_id == exam_id)
            .count()
        )

    # ----- Submission -----

    async def submit(self, student_id: str, exam_id: str, answers: Sequence[tuple[str, str]]) -> ExamResult:
        """
        Grade and record one submission. `answers` is a list of
        (question_id, option_id); it must cover every question exactly once.
        Each call appends a new immutable result.
        """
        async with self.guard.hold((student_id, exam_id)):
            exam = self.get_available(student_id, exam_id)
            if not is_complete_submission((q.id for q in exam.questions), answers):
                raise IncompleteSubmission()

            max_attempts = self.settings.exam_max_attempts
            if max_attempts is not None and self.attempts_count(student_id, exam_id) >= max_attempts:
                raise AttemptLimitReached()

            outcome = self.engine.grade(gradable_questions(exam), dict(answers))
            result = ExamResult(
                id=str(uuid4()),
                exam_id=exam.id,
                student_id=student_id,
                score=outcome.score,
                correct_answers=outcome.correct_answers,
                total_questions=outcome.total_questions,
                passed=outcome.passed,
                answers=[{"question_id": q, "option_id": o} for q, o in answers],
                submitted_at=datetime.utcnow(),
            )
            self.db.add(result)
            self.db.commit()
            self.db.refresh(result)

        logger.info(
            "exam submitted exam=%s student=%s score=%s correct=%s/%s passed=%s",
            exam_id, student_id, result.score, result.correct_answers, result.total_questions, result.passed,
        )
        self._publish(("exam-results", student_id), ("exams", "available", student_id))
        return result

    def _publish(self, *keys: tuple) -> None:
        if self.bus is not None:
            self.bus.publish(*keys)
