"""
Student progress schemas (course list progress bars and the course viewer header).
"""

from pydantic import BaseModel
from typing import Optional


class ChapterProgressResponse(BaseModel):
    """Acknowledgement of a chapter completion."""
    id: str
    chapter_id: str
    student_id: str
    completed: bool
    completed_at: str  # ISO
    created: bool  # False when the chapter had already been completed


class SubjectProgressResponse(BaseModel):
    """Derived completion for one (student, subject). Never stored."""
    subject_id: str
    total_chapters: int
    completed_chapters: int
    percentage: int
    completed_chapter_ids: list[str]
    last_activity_at: Optional[str] = None  # ISO of the latest completion


class MultipleSubjectsProgressResponse(BaseModel):
    """Subjects whose progress could not be read are omitted, not zeroed."""
    progress: dict[str, SubjectProgressResponse]
