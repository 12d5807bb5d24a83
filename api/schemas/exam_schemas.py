"""
Exam authoring, submission and result schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional, Literal

QuestionTypeName = Literal["multiple_choice", "true_false"]


class ExamOptionPayload(BaseModel):
    option_text: str
    is_correct: bool = False


class ExamQuestionPayload(BaseModel):
    question_text: str
    question_type: QuestionTypeName = "multiple_choice"
    options: list[ExamOptionPayload]


class CreateExamRequest(BaseModel):
    title: str
    module_id: str
    questions: list[ExamQuestionPayload]


class UpdateExamRequest(BaseModel):
    """Partial update: omitted fields keep their persisted value."""
    title: Optional[str] = None
    questions: Optional[list[ExamQuestionPayload]] = None


class ExamOptionResponse(BaseModel):
    id: str
    option_text: str
    is_correct: Optional[bool] = None  # only sent to teachers


class ExamQuestionResponse(BaseModel):
    id: str
    question_text: str
    question_type: QuestionTypeName
    options: list[ExamOptionResponse]


class ExamResponse(BaseModel):
    id: str
    title: str
    module_id: str
    questions: list[ExamQuestionResponse]
    questions_count: int
    created_at: str
    updated_at: str


class ExamListResponse(BaseModel):
    exams: list[ExamResponse]


class ExamAnswer(BaseModel):
    question_id: str
    option_id: str


class SubmitExamRequest(BaseModel):
    answers: list[ExamAnswer] = Field(default_factory=list)


class ExamResultResponse(BaseModel):
    id: str
    exam_id: str
    score: int
    passed: bool
    correct_answers: int
    total_questions: int
    submitted_at: str


class StudentExamSummary(BaseModel):
    id: str
    title: str
    module_id: str


class StudentExamResult(BaseModel):
    id: str
    score: int
    passed: bool
    correct_answers: int
    total_questions: int
    submitted_at: str
    exam: StudentExamSummary


class StudentExamResultsResponse(BaseModel):
    results: list[StudentExamResult]
