"""
Deterministic exam scoring.

The engine is stateless: grade(questions, answers) depends only on its inputs
and the configured passing score, so grading the same submission twice gives
the same outcome.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from api.services.errors import EmptyExamError


@dataclass(frozen=True)
class GradableQuestion:
    question_id: str
    correct_option_ids: frozenset[str]


@dataclass(frozen=True)
class GradeOutcome:
    score: int
    correct_answers: int
    total_questions: int
    passed: bool


def gradable_questions(exam: Any) -> list[GradableQuestion]:
    """Project a persisted Exam row onto what the engine needs."""
    return [
        GradableQuestion(
            question_id=q.id,
            correct_option_ids=frozenset(o.id for o in q.options if o.is_correct),
        )
        for q in exam.questions
    ]


def percent_score(correct: int, total: int) -> int:
    """round(100 * correct / total), halves rounded up."""
    return (200 * correct + total) // (2 * total)


def is_complete_submission(question_ids: Iterable[str], answers: Sequence[tuple[str, str]]) -> bool:
    """
    True when every question has exactly one chosen option and no answer
    refers to a question outside the exam.
    """
    expected = set(question_ids)
    answered = [qid for qid, _ in answers]
    return len(answered) == len(set(answered)) and set(answered) == expected


class ExamGradingEngine:
    def __init__(self, pass_score: int):
        if not 0 <= pass_score <= 100:
            raise ValueError(f"pass_score must be within 0..100, got {pass_score}")
        self.pass_score = pass_score

    def grade(self, questions: Sequence[GradableQuestion], answers: Mapping[str, str]) -> GradeOutcome:
        """
        Score `answers` (question id -> chosen option id) against `questions`.
        A missing answer, or one naming an option that is not marked correct,
        counts as incorrect.
        """
        total = len(questions)
        if total == 0:
            raise EmptyExamError()
        correct = sum(1 for q in questions if answers.get(q.question_id) in q.correct_option_ids)
        score = percent_score(correct, total)
        return GradeOutcome(
            score=score,
            correct_answers=correct,
            total_questions=total,
            passed=self.passed(score),
        )

    def passed(self, score: int) -> bool:
        return score >= self.pass_score
