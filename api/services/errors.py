"""
Domain errors raised by the service layer.

Routes do not catch these; the app-level handler turns any DomainError into a
JSON response with its status code and detail.
"""

from typing import Any


class DomainError(Exception):
    status_code: int = 400
    detail: Any = "Request could not be processed"

    def __init__(self, detail: Any = None):
        if detail is not None:
            self.detail = detail
        super().__init__(str(self.detail))


# ----- Authoring -----

class DraftInvalid(DomainError):
    """Exam draft failed the authoring validity gate."""
    status_code = 422
    detail = "Exam draft is not valid"


class DraftRejected(DomainError):
    """Payload cannot be represented as a draft (e.g. two correct options)."""
    status_code = 422
    detail = "Exam draft is malformed"


class ExamConflict(DomainError):
    status_code = 409
    detail = "This module already has an exam"


# ----- Lookup -----

class ExamNotFound(DomainError):
    status_code = 404
    detail = "Exam not found"


class ModuleNotFound(DomainError):
    status_code = 404
    detail = "Module not found"


class ChapterNotFound(DomainError):
    status_code = 404
    detail = "Chapter not found"


class SubjectNotFound(DomainError):
    status_code = 404
    detail = "Subject not found"


# ----- Submission -----

class IncompleteSubmission(DomainError):
    status_code = 400
    detail = "Every question must have exactly one answer"


class EmptyExamError(DomainError):
    status_code = 400
    detail = "Exam has no questions"


class SubmissionInProgress(DomainError):
    status_code = 409
    detail = "A submission for this exam is already in progress"


class AttemptLimitReached(DomainError):
    status_code = 409
    detail = "No attempts left for this exam"


# ----- Ownership -----

class NotSubjectTeacher(DomainError):
    status_code = 403
    detail = "Not the teacher of this subject"
