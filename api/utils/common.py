"""
Common utility functions used across multiple routes.
"""

from datetime import datetime
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session

from api.models.models import Enrollment, Exam, ExamResult
from api.schemas.course_schemas import (
    ChapterOutlineResponse,
    CourseOutlineResponse,
    ModuleOutlineResponse,
    ViewerStateResponse,
)
from api.schemas.exam_schemas import (
    ExamOptionResponse,
    ExamQuestionResponse,
    ExamResponse,
    ExamResultResponse,
    StudentExamResult,
    StudentExamSummary,
)
from api.schemas.progress_schemas import SubjectProgressResponse
from api.services.course_sequencer import CourseOutline, ViewerState
from api.services.exam_service import InFlightGuard
from api.services.invalidation import InvalidationBus, ViewCache
from api.services.progress_tracker import SubjectProgress


def iso_format(dt: datetime) -> str:
    """Format datetime as ISO string with Z suffix."""
    return dt.isoformat() + "Z"


def iso_or_none(dt: Optional[datetime]) -> Optional[str]:
    return iso_format(dt) if dt else None


# ----- App-scoped collaborators (created in the app lifespan) -----

def get_bus(request: Request) -> InvalidationBus:
    return request.app.state.invalidation_bus


def get_view_cache(request: Request) -> ViewCache:
    return request.app.state.view_cache


def get_submit_guard(request: Request) -> InFlightGuard:
    return request.app.state.submit_guard


def is_enrolled(db: Session, student_id: str, subject_id: str) -> bool:
    return (
        db.query(Enrollment.id)
        .filter(Enrollment.student_id == student_id, Enrollment.subject_id == subject_id)
        .first()
        is not None
    )


# ----- Response builders -----

def exam_response(exam: Exam, *, include_answers: bool) -> ExamResponse:
    """Serialize an exam. Correctness flags are only included for authors."""
    return ExamResponse(
        id=exam.id,
        title=exam.title,
        module_id=exam.module_id,
        questions=[
            ExamQuestionResponse(
                id=q.id,
                question_text=q.text,
                question_type=q.question_type,
                options=[
                    ExamOptionResponse(
                        id=o.id,
                        option_text=o.text,
                        is_correct=bool(o.is_correct) if include_answers else None,
                    )
                    for o in q.options
                ],
            )
            for q in exam.questions
        ],
        questions_count=len(exam.questions),
        created_at=iso_format(exam.created_at),
        updated_at=iso_format(exam.updated_at),
    )


def result_response(result: ExamResult) -> ExamResultResponse:
    return ExamResultResponse(
        id=result.id,
        exam_id=result.exam_id,
        score=result.score,
        passed=bool(result.passed),
        correct_answers=result.correct_answers,
        total_questions=result.total_questions,
        submitted_at=iso_format(result.submitted_at),
    )


def student_result(result: ExamResult) -> StudentExamResult:
    return StudentExamResult(
        id=result.id,
        score=result.score,
        passed=bool(result.passed),
        correct_answers=result.correct_answers,
        total_questions=result.total_questions,
        submitted_at=iso_format(result.submitted_at),
        exam=StudentExamSummary(id=result.exam.id, title=result.exam.title, module_id=result.exam.module_id),
    )


def progress_response(progress: SubjectProgress) -> SubjectProgressResponse:
    return SubjectProgressResponse(
        subject_id=progress.subject_id,
        total_chapters=progress.total_chapters,
        completed_chapters=progress.completed_chapters,
        percentage=progress.percentage,
        completed_chapter_ids=list(progress.completed_chapter_ids),
        last_activity_at=iso_or_none(progress.last_activity_at),
    )


def outline_fields(outline: CourseOutline, view: ViewerState) -> dict:
    """Field values shared by CourseOutlineResponse and AdvanceResponse."""
    return dict(
        subject_id=outline.subject_id,
        name=outline.name,
        current_chapter_id=outline.current_chapter_id,
        progress=progress_response(outline.progress),
        modules=[
            ModuleOutlineResponse(
                id=m.id,
                title=m.title,
                order_index=m.order_index,
                completed=m.completed,
                exam_id=m.exam_id,
                exam_available=m.exam_available,
                chapters=[
                    ChapterOutlineResponse(
                        id=c.id,
                        module_id=c.module_id,
                        title=c.title,
                        order_index=c.order_index,
                        content_type=c.content_type,
                        video_url=c.video_url,
                        content_url=c.content_url,
                        state=c.state.value,
                        completed=c.completed,
                        current=c.current,
                    )
                    for c in m.chapters
                ],
            )
            for m in outline.modules
        ],
        view=ViewerStateResponse(
            selected_chapter_id=view.selected_chapter_id,
            expanded_module_ids=list(view.expanded_module_ids),
        ),
    )


def outline_response(outline: CourseOutline, view: ViewerState) -> CourseOutlineResponse:
    return CourseOutlineResponse(**outline_fields(outline, view))
