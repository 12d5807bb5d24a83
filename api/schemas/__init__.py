"""
API schemas package. Import from submodules or from this package.

Example:
    from api.schemas import ExamResponse, SubjectProgressResponse
    from api.schemas.exam_schemas import ExamResponse
"""

from api.schemas.auth_schemas import AuthTokenPayload, Role
from api.schemas.user_schemas import User
from api.schemas.exam_schemas import (
    ExamOptionPayload,
    ExamQuestionPayload,
    CreateExamRequest,
    UpdateExamRequest,
    ExamOptionResponse,
    ExamQuestionResponse,
    ExamResponse,
    ExamListResponse,
    ExamAnswer,
    SubmitExamRequest,
    ExamResultResponse,
    StudentExamSummary,
    StudentExamResult,
    StudentExamResultsResponse,
)
from api.schemas.progress_schemas import (
    ChapterProgressResponse,
    SubjectProgressResponse,
    MultipleSubjectsProgressResponse,
)
from api.schemas.course_schemas import (
    SubjectResponse,
    SubjectListResponse,
    ChapterOutlineResponse,
    ModuleOutlineResponse,
    ViewerStateResponse,
    CourseOutlineResponse,
    AdvanceRequest,
    AdvanceResponse,
    PublishChapterRequest,
    PublishChapterResponse,
)

__all__ = [
    # auth / user
    "AuthTokenPayload",
    "Role",
    "User",
    # exams
    "ExamOptionPayload",
    "ExamQuestionPayload",
    "CreateExamRequest",
    "UpdateExamRequest",
    "ExamOptionResponse",
    "ExamQuestionResponse",
    "ExamResponse",
    "ExamListResponse",
    "ExamAnswer",
    "SubmitExamRequest",
    "ExamResultResponse",
    "StudentExamSummary",
    "StudentExamResult",
    "StudentExamResultsResponse",
    # progress
    "ChapterProgressResponse",
    "SubjectProgressResponse",
    "MultipleSubjectsProgressResponse",
    # course viewer
    "SubjectResponse",
    "SubjectListResponse",
    "ChapterOutlineResponse",
    "ModuleOutlineResponse",
    "ViewerStateResponse",
    "CourseOutlineResponse",
    "AdvanceRequest",
    "AdvanceResponse",
    "PublishChapterRequest",
    "PublishChapterResponse",
]
