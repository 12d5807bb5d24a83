"""
Course viewer endpoints: enrolled subjects, outline with chapter states,
auto-advance / manual next, and chapter publishing for authors.
"""

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.config import get_db
from api.models.models import Chapter, Enrollment, Module, Subject
from api.schemas.course_schemas import (
    AdvanceRequest,
    AdvanceResponse,
    CourseOutlineResponse,
    PublishChapterRequest,
    PublishChapterResponse,
    SubjectListResponse,
    SubjectResponse,
)
from api.schemas.user_schemas import User
from api.services.course_sequencer import AdvanceResult, CourseSequencer
from api.services.errors import ChapterNotFound, NotSubjectTeacher, SubjectNotFound
from api.services.invalidation import InvalidationBus
from api.services.progress_tracker import ProgressTracker
from api.routes.progress_routes import get_progress_tracker
from api.utils.auth import require_author, require_student
from api.utils.common import get_bus, is_enrolled, outline_fields, outline_response, progress_response
from api.utils.logger import configure_logging

course_routes = APIRouter()
logger = configure_logging()


def get_sequencer(tracker: ProgressTracker = Depends(get_progress_tracker)) -> CourseSequencer:
    return CourseSequencer(tracker)


def _require_enrollment(db: Session, student_id: str, subject_id: str) -> None:
    if not is_enrolled(db, student_id, subject_id):
        raise SubjectNotFound()


def _advance_response(result: AdvanceResult) -> AdvanceResponse:
    return AdvanceResponse(
        **outline_fields(result.outline, result.view),
        completed_now=result.completed_now,
        advanced=result.advanced,
    )


@course_routes.get("/subjects", response_model=SubjectListResponse)
async def list_my_subjects(
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
    tracker: ProgressTracker = Depends(get_progress_tracker),
) -> SubjectListResponse:
    """Subjects the student is enrolled in, each with its progress when it could be read."""
    subjects = (
        db.query(Subject)
        .join(Enrollment, Enrollment.subject_id == Subject.id)
        .filter(Enrollment.student_id == current_user.id)
        .order_by(Subject.name.asc())
        .all()
    )
    progress = await tracker.get_multiple_subjects_progress(current_user.id, [s.id for s in subjects])
    return SubjectListResponse(
        subjects=[
            SubjectResponse(
                id=s.id,
                name=s.name,
                code=s.code,
                description=s.description,
                progress=progress_response(progress[s.id]) if s.id in progress else None,
            )
            for s in subjects
        ]
    )


@course_routes.get("/subjects/{subject_id}/outline", response_model=CourseOutlineResponse)
async def get_outline(
    subject_id: str,
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
    sequencer: CourseSequencer = Depends(get_sequencer),
) -> CourseOutlineResponse:
    """Published modules and chapters with per-chapter state and the initial viewer selection."""
    _require_enrollment(db, current_user.id, subject_id)
    outline, view = sequencer.open_view(current_user.id, subject_id)
    return outline_response(outline, view)


@course_routes.post("/subjects/{subject_id}/chapters/{chapter_id}/ended", response_model=AdvanceResponse)
async def chapter_content_ended(
    subject_id: str,
    chapter_id: str,
    req: AdvanceRequest,
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
    sequencer: CourseSequencer = Depends(get_sequencer),
) -> AdvanceResponse:
    """Content reached its natural end: complete the chapter and move to the next one."""
    _require_enrollment(db, current_user.id, subject_id)
    result = sequencer.on_content_ended(current_user.id, subject_id, chapter_id, req.expanded_module_ids)
    return _advance_response(result)


@course_routes.post("/subjects/{subject_id}/chapters/{chapter_id}/next", response_model=AdvanceResponse)
async def chapter_next(
    subject_id: str,
    chapter_id: str,
    req: AdvanceRequest,
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
    sequencer: CourseSequencer = Depends(get_sequencer),
) -> AdvanceResponse:
    """Manual next: complete the chapter (if needed) and move to the next one."""
    _require_enrollment(db, current_user.id, subject_id)
    result = sequencer.next(current_user.id, subject_id, chapter_id, req.expanded_module_ids)
    return _advance_response(result)


@course_routes.patch("/chapters/{chapter_id}/publish", response_model=PublishChapterResponse)
async def publish_chapter(
    chapter_id: str,
    req: PublishChapterRequest,
    current_user: User = Depends(require_author),
    db: Session = Depends(get_db),
    bus: InvalidationBus = Depends(get_bus),
) -> PublishChapterResponse:
    """Publish or unpublish a chapter. Every student's derived progress for the subject goes stale."""
    row = (
        db.query(Chapter, Module.subject_id, Subject.teacher_id)
        .join(Module, Module.id == Chapter.module_id)
        .join(Subject, Subject.id == Module.subject_id)
        .filter(Chapter.id == chapter_id)
        .first()
    )
    if row is None:
        raise ChapterNotFound()
    chapter, subject_id, teacher_id = row
    if current_user.role != "admin" and teacher_id != current_user.id:
        raise NotSubjectTeacher()

    if bool(chapter.is_published) != req.is_published:
        chapter.is_published = req.is_published
        chapter.updated_at = datetime.utcnow()
        db.add(chapter)
        db.commit()
        logger.info("chapter publish chapter=%s published=%s by=%s", chapter_id, req.is_published, current_user.email)
        bus.publish(("subject-progress",), ("courses-progress",), ("course-chapters", subject_id))
    return PublishChapterResponse(id=chapter.id, module_id=chapter.module_id, is_published=bool(chapter.is_published))
