"""
Subject, module and chapter schemas for the course viewer.
"""

from pydantic import BaseModel
from typing import Optional, Literal

from api.schemas.progress_schemas import SubjectProgressResponse


class SubjectResponse(BaseModel):
    id: str
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    progress: Optional[SubjectProgressResponse] = None  # omitted when it could not be read


class SubjectListResponse(BaseModel):
    subjects: list[SubjectResponse]


class ChapterOutlineResponse(BaseModel):
    id: str
    module_id: str
    title: str
    order_index: int
    content_type: Literal["video", "pdf", "content"]
    video_url: Optional[str] = None
    content_url: Optional[str] = None
    state: Literal["completed", "current", "available"]
    completed: bool
    current: bool


class ModuleOutlineResponse(BaseModel):
    id: str
    title: str
    order_index: int
    completed: bool
    exam_id: Optional[str] = None
    exam_available: bool
    chapters: list[ChapterOutlineResponse]


class ViewerStateResponse(BaseModel):
    selected_chapter_id: Optional[str] = None
    expanded_module_ids: list[str] = []


class CourseOutlineResponse(BaseModel):
    subject_id: str
    name: str
    current_chapter_id: Optional[str] = None
    progress: SubjectProgressResponse
    modules: list[ModuleOutlineResponse]
    view: ViewerStateResponse


class AdvanceRequest(BaseModel):
    """Modules the viewer currently has expanded; the next chapter's module is added."""
    expanded_module_ids: list[str] = []


class AdvanceResponse(CourseOutlineResponse):
    completed_now: bool
    advanced: bool


class PublishChapterRequest(BaseModel):
    is_published: bool


class PublishChapterResponse(BaseModel):
    id: str
    module_id: str
    is_published: bool
