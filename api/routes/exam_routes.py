"""
Exam authoring, taking and result endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from api.config import get_db, get_settings
from api.schemas import (
    CreateExamRequest,
    ExamListResponse,
    ExamResponse,
    ExamResultResponse,
    StudentExamResultsResponse,
    SubmitExamRequest,
    UpdateExamRequest,
)
from api.schemas.user_schemas import User
from api.services.exam_authoring import ExamDraft
from api.services.exam_service import ExamService, InFlightGuard
from api.services.invalidation import InvalidationBus
from api.utils.auth import get_current_user, require_author, require_student
from api.utils.common import exam_response, get_bus, get_submit_guard, result_response, student_result
from api.utils.logger import configure_logging, log_request

exam_routes = APIRouter()
logger = configure_logging()


def get_exam_service(
    db: Session = Depends(get_db),
    bus: InvalidationBus = Depends(get_bus),
    guard: InFlightGuard = Depends(get_submit_guard),
) -> ExamService:
    return ExamService(db, bus=bus, settings=get_settings(), guard=guard)


def _is_author(user: User) -> bool:
    return user.role in ("teacher", "admin")


# ----- Authoring (teacher) -----

@exam_routes.post("/exams", response_model=ExamResponse)
async def create_exam(
    req: CreateExamRequest,
    current_user: User = Depends(require_author),
    service: ExamService = Depends(get_exam_service),
) -> ExamResponse:
    """Create the exam of a module. A module holds at most one exam (409 otherwise)."""
    service.check_author(current_user.id, current_user.role, req.module_id)
    draft = ExamDraft.from_payload(req)
    exam = service.create(draft, req.module_id)
    logger.info("exam create by=%s module=%s", current_user.email, req.module_id)
    return exam_response(exam, include_answers=True)


@exam_routes.put("/exams/{exam_id}", response_model=ExamResponse)
async def update_exam(
    exam_id: str,
    req: UpdateExamRequest,
    current_user: User = Depends(require_author),
    service: ExamService = Depends(get_exam_service),
) -> ExamResponse:
    """Update title and/or questions. Omitted fields keep their persisted value."""
    exam = service.get(exam_id)
    service.check_author(current_user.id, current_user.role, exam.module_id)
    draft = ExamDraft.from_exam(exam)
    if req.questions is not None:
        draft = ExamDraft.from_payload(req.model_copy(update={"title": req.title if req.title is not None else exam.title}))
    elif req.title is not None:
        draft.title = req.title
    exam = service.update(exam_id, draft)
    return exam_response(exam, include_answers=True)


@exam_routes.delete("/exams/{exam_id}")
async def delete_exam(
    exam_id: str,
    current_user: User = Depends(require_author),
    service: ExamService = Depends(get_exam_service),
) -> dict:
    """Delete an exam and its result history."""
    service.check_author(current_user.id, current_user.role, service.get(exam_id).module_id)
    service.delete(exam_id)
    return {"id": exam_id, "deleted": True}


@exam_routes.get("/exams", response_model=ExamListResponse)
async def list_teacher_exams(
    current_user: User = Depends(require_author),
    service: ExamService = Depends(get_exam_service),
) -> ExamListResponse:
    """Exams of every subject taught by the current teacher."""
    exams = service.list_for_teacher(current_user.id)
    return ExamListResponse(exams=[exam_response(e, include_answers=True) for e in exams])


@exam_routes.get("/exams/by-subject/{subject_id}", response_model=ExamListResponse)
async def list_subject_exams(
    subject_id: str,
    current_user: User = Depends(require_author),
    service: ExamService = Depends(get_exam_service),
) -> ExamListResponse:
    exams = service.list_by_subject(subject_id)
    return ExamListResponse(exams=[exam_response(e, include_answers=True) for e in exams])


# ----- Taking (student) -----

@exam_routes.get("/exams/available", response_model=ExamListResponse, response_model_exclude_none=True)
async def list_available_exams(
    current_user: User = Depends(require_student),
    service: ExamService = Depends(get_exam_service),
) -> ExamListResponse:
    """Exams whose module is reachable in one of the student's subjects."""
    exams = service.list_available(current_user.id)
    return ExamListResponse(exams=[exam_response(e, include_answers=False) for e in exams])


@exam_routes.get("/exams/results/me", response_model=StudentExamResultsResponse)
async def my_exam_results(
    current_user: User = Depends(require_student),
    service: ExamService = Depends(get_exam_service),
) -> StudentExamResultsResponse:
    results = service.results_for_student(current_user.id)
    return StudentExamResultsResponse(results=[student_result(r) for r in results])


@exam_routes.post("/exams/{exam_id}/submit", response_model=ExamResultResponse)
async def submit_exam(
    exam_id: str,
    req: SubmitExamRequest,
    current_user: User = Depends(require_student),
    service: ExamService = Depends(get_exam_service),
) -> ExamResultResponse:
    """Grade the submitted answers. Every question must be answered exactly once."""
    with log_request(logger, f"exam submit exam={exam_id} student={current_user.id}"):
        result = await service.submit(
            current_user.id,
            exam_id,
            [(a.question_id, a.option_id) for a in req.answers],
        )
    return result_response(result)


# ----- Shared reads -----

@exam_routes.get("/exams/by-module/{module_id}", response_model=ExamResponse, response_model_exclude_none=True)
async def get_module_exam(
    module_id: str,
    current_user: User = Depends(get_current_user),
    service: ExamService = Depends(get_exam_service),
) -> ExamResponse:
    exam = service.get_by_module(module_id)
    if exam is None or (not _is_author(current_user) and not service.is_available(current_user.id, exam.id)):
        raise HTTPException(status_code=404, detail="Exam not found")
    return exam_response(exam, include_answers=_is_author(current_user))


@exam_routes.get("/exams/{exam_id}", response_model=ExamResponse, response_model_exclude_none=True)
async def get_exam(
    exam_id: str,
    current_user: User = Depends(get_current_user),
    service: ExamService = Depends(get_exam_service),
) -> ExamResponse:
    if _is_author(current_user):
        exam = service.get(exam_id)
    else:
        exam = service.get_available(current_user.id, exam_id)
    return exam_response(exam, include_answers=_is_author(current_user))
