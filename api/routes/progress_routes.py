"""
Student progress endpoints: chapter completion and derived subject progress.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.config import get_db
from api.schemas.progress_schemas import (
    ChapterProgressResponse,
    MultipleSubjectsProgressResponse,
    SubjectProgressResponse,
)
from api.schemas.user_schemas import User
from api.services.errors import ChapterNotFound
from api.services.invalidation import InvalidationBus, ViewCache
from api.services.progress_tracker import ProgressTracker
from api.utils.auth import require_student
from api.utils.common import get_bus, get_view_cache, is_enrolled, iso_format, progress_response

progress_routes = APIRouter()


def get_progress_tracker(
    db: Session = Depends(get_db),
    bus: InvalidationBus = Depends(get_bus),
    cache: ViewCache = Depends(get_view_cache),
) -> ProgressTracker:
    return ProgressTracker(db, bus=bus, cache=cache)


@progress_routes.post("/progress/chapters/{chapter_id}/complete", response_model=ChapterProgressResponse)
async def complete_chapter(
    chapter_id: str,
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
    tracker: ProgressTracker = Depends(get_progress_tracker),
) -> ChapterProgressResponse:
    """Mark a chapter complete. Repeating the call is a no-op (created=false)."""
    # Chapters of subjects the student is not enrolled in look missing.
    if not is_enrolled(db, current_user.id, tracker.subject_of_chapter(chapter_id)):
        raise ChapterNotFound()
    record, created = tracker.complete_chapter(current_user.id, chapter_id)
    return ChapterProgressResponse(
        id=record.id,
        chapter_id=record.chapter_id,
        student_id=record.student_id,
        completed=bool(record.completed),
        completed_at=iso_format(record.completed_at),
        created=created,
    )


@progress_routes.get("/progress/subjects", response_model=MultipleSubjectsProgressResponse)
async def get_subjects_progress(
    ids: list[str] = Query(default=[], description="Subject ids"),
    current_user: User = Depends(require_student),
    tracker: ProgressTracker = Depends(get_progress_tracker),
) -> MultipleSubjectsProgressResponse:
    """Progress for several subjects. Subjects that fail to load are left out."""
    progress = await tracker.get_multiple_subjects_progress(current_user.id, ids)
    return MultipleSubjectsProgressResponse(progress={sid: progress_response(p) for sid, p in progress.items()})


@progress_routes.get("/progress/subjects/{subject_id}", response_model=SubjectProgressResponse)
async def get_subject_progress(
    subject_id: str,
    current_user: User = Depends(require_student),
    tracker: ProgressTracker = Depends(get_progress_tracker),
) -> SubjectProgressResponse:
    """Derived progress for one subject; zero when nothing has been completed yet."""
    return progress_response(tracker.get_subject_progress(current_user.id, subject_id))
