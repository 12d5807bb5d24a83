"""
Exam authoring: in-progress exam drafts and the validity gate in front of persistence.

Questions are a tagged union (MultipleChoiceQuestion | TrueFalseQuestion). Each
variant owns its option-count bounds and default option set. Options are
immutable and held in a tuple that only the variant methods replace, and
marking an option correct always clears the others, so a question with two
correct options cannot be built through the draft API. The validator checks
both rules again before anything is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Iterable, Optional

from api.services.errors import DraftRejected

TRUE_FALSE_LABELS = ("Verdadero", "Falso")
MIN_OPTIONS = 2
MAX_OPTIONS = 6
DEFAULT_CHOICES = 4


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"


@dataclass(frozen=True)
class OptionDraft:
    text: str = ""
    is_correct: bool = False


def _blank_choices() -> tuple[OptionDraft, ...]:
    return tuple(OptionDraft() for _ in range(DEFAULT_CHOICES))


def _true_false_choices() -> tuple[OptionDraft, ...]:
    return tuple(OptionDraft(text=label) for label in TRUE_FALSE_LABELS)


@dataclass
class QuestionDraft:
    text: str = ""
    options: tuple[OptionDraft, ...] = ()

    question_type: ClassVar[QuestionType]

    def __post_init__(self) -> None:
        self.options = tuple(self.options)
        if self.correct_count > 1:
            raise DraftRejected("A question can have only one correct option")
        error = self.shape_error()
        if error:
            raise DraftRejected(error)

    def shape_error(self) -> Optional[str]:
        """Why the option set does not fit this question type, or None."""
        return None

    @property
    def correct_count(self) -> int:
        return sum(1 for o in self.options if o.is_correct)

    @property
    def correct_index(self) -> Optional[int]:
        for i, o in enumerate(self.options):
            if o.is_correct:
                return i
        return None

    def mark_correct(self, index: int) -> None:
        """Mark option `index` correct and every other option incorrect."""
        if not 0 <= index < len(self.options):
            return
        self.options = tuple(OptionDraft(text=o.text, is_correct=(i == index)) for i, o in enumerate(self.options))

    def set_option_text(self, index: int, text: str) -> None:
        if 0 <= index < len(self.options):
            current = self.options[index]
            self.options = self.options[:index] + (OptionDraft(text=text, is_correct=current.is_correct),) + self.options[index + 1:]

    def add_option(self) -> bool:
        return False

    def remove_option(self, index: int) -> bool:
        return False


@dataclass
class MultipleChoiceQuestion(QuestionDraft):
    options: tuple[OptionDraft, ...] = field(default_factory=_blank_choices)

    question_type: ClassVar[QuestionType] = QuestionType.MULTIPLE_CHOICE

    def shape_error(self) -> Optional[str]:
        if not MIN_OPTIONS <= len(self.options) <= MAX_OPTIONS:
            return f"Multiple choice questions need {MIN_OPTIONS} to {MAX_OPTIONS} options, got {len(self.options)}"
        return None

    def add_option(self) -> bool:
        """Append a blank option. No-op once the question holds MAX_OPTIONS."""
        if len(self.options) >= MAX_OPTIONS:
            return False
        self.options = self.options + (OptionDraft(),)
        return True

    def remove_option(self, index: int) -> bool:
        """Drop option `index`. No-op once the question is down to MIN_OPTIONS."""
        if len(self.options) <= MIN_OPTIONS or not 0 <= index < len(self.options):
            return False
        self.options = self.options[:index] + self.options[index + 1:]
        return True


@dataclass
class TrueFalseQuestion(QuestionDraft):
    options: tuple[OptionDraft, ...] = field(default_factory=_true_false_choices)

    question_type: ClassVar[QuestionType] = QuestionType.TRUE_FALSE

    def shape_error(self) -> Optional[str]:
        texts = tuple(o.text.strip().lower() for o in self.options)
        if texts != tuple(label.lower() for label in TRUE_FALSE_LABELS):
            return f"True/false questions must have exactly the options {', '.join(TRUE_FALSE_LABELS)}"
        return None

    def set_option_text(self, index: int, text: str) -> None:
        # Labels are fixed.
        return None


_VARIANTS: dict[QuestionType, type[QuestionDraft]] = {
    QuestionType.MULTIPLE_CHOICE: MultipleChoiceQuestion,
    QuestionType.TRUE_FALSE: TrueFalseQuestion,
}


def new_question(question_type: QuestionType | str, text: str = "") -> QuestionDraft:
    return _VARIANTS[QuestionType(question_type)](text=text)


def switch_question_type(question: QuestionDraft, new_type: QuestionType | str) -> QuestionDraft:
    """
    Change a question's type. Destructive: the options are replaced by the new
    type's defaults and any previous option text or correctness is discarded.
    The question text is kept. Same-type switches return the question as is.
    """
    new_type = QuestionType(new_type)
    if question.question_type == new_type:
        return question
    return new_question(new_type, text=question.text)


# ----- Normalized output -----

@dataclass(frozen=True)
class NormalizedOption:
    text: str
    is_correct: bool


@dataclass(frozen=True)
class NormalizedQuestion:
    text: str
    question_type: QuestionType
    options: tuple[NormalizedOption, ...]


@dataclass(frozen=True)
class NormalizedExam:
    title: str
    questions: tuple[NormalizedQuestion, ...]


@dataclass
class ExamDraft:
    title: str = ""
    questions: list[QuestionDraft] = field(default_factory=lambda: [MultipleChoiceQuestion()])

    def add_question(self, question_type: QuestionType | str = QuestionType.MULTIPLE_CHOICE) -> QuestionDraft:
        q = new_question(question_type)
        self.questions.append(q)
        return q

    def remove_question(self, index: int) -> bool:
        """Remove a question; the last remaining question cannot be removed."""
        if len(self.questions) <= 1 or not 0 <= index < len(self.questions):
            return False
        del self.questions[index]
        return True

    def set_question_type(self, index: int, new_type: QuestionType | str) -> QuestionDraft:
        self.questions[index] = switch_question_type(self.questions[index], new_type)
        return self.questions[index]

    def normalized(self) -> NormalizedExam:
        return NormalizedExam(
            title=self.title.strip(),
            questions=tuple(
                NormalizedQuestion(
                    text=q.text.strip(),
                    question_type=q.question_type,
                    options=tuple(NormalizedOption(text=o.text.strip(), is_correct=o.is_correct) for o in q.options),
                )
                for q in self.questions
            ),
        )

    @classmethod
    def from_payload(cls, payload: Any) -> "ExamDraft":
        """
        Build a draft from a create/update request body (see api.schemas.exam_schemas).
        Raises DraftRejected when a question cannot be represented.
        """
        questions = [
            _build_question(
                n,
                q.question_type,
                q.question_text,
                [(o.option_text, o.is_correct) for o in q.options],
            )
            for n, q in enumerate(payload.questions, start=1)
        ]
        return cls(title=payload.title, questions=questions)

    @classmethod
    def from_exam(cls, exam: Any) -> "ExamDraft":
        """Edit-mode load of a persisted Exam row."""
        questions = [
            _build_question(n, q.question_type, q.text, [(o.text, bool(o.is_correct)) for o in q.options])
            for n, q in enumerate(exam.questions, start=1)
        ]
        return cls(title=exam.title, questions=questions)


def _build_question(
    number: int,
    question_type: QuestionType | str,
    text: str,
    options: Iterable[tuple[str, bool]],
) -> QuestionDraft:
    options = list(options)
    correct = [i for i, (_, is_correct) in enumerate(options) if is_correct]
    if len(correct) > 1:
        raise DraftRejected(f"Question {number} has more than one correct option")
    try:
        variant = _VARIANTS[QuestionType(question_type)]
        q = variant(text=text, options=tuple(OptionDraft(text=t) for t, _ in options))
    except ValueError:
        raise DraftRejected(f"Question {number} has unknown type {question_type!r}")
    except DraftRejected as e:
        raise DraftRejected(f"Question {number}: {e.detail}")
    if correct:
        q.mark_correct(correct[0])
    return q


class ExamAuthoringValidator:
    """Advisory gate: only drafts that pass `is_valid` may be persisted."""

    def problems(self, draft: ExamDraft) -> list[str]:
        out: list[str] = []
        if not draft.title.strip():
            out.append("Title is required")
        if not draft.questions:
            out.append("At least one question is required")
        for n, q in enumerate(draft.questions, start=1):
            if not q.text.strip():
                out.append(f"Question {n} has no text")
            shape = q.shape_error()
            if shape:
                out.append(f"Question {n}: {shape}")
            if any(not o.text.strip() for o in q.options):
                out.append(f"Question {n} has an empty option")
            if q.correct_count == 0:
                out.append(f"Question {n} has no correct option")
            elif q.correct_count > 1:
                out.append(f"Question {n} has more than one correct option")
        return out

    def is_valid(self, draft: ExamDraft) -> bool:
        return not self.problems(draft)
