"""
Course sequencing for the content viewer.

Chapter state is derived, never stored:
  completed  the chapter id is in the student's completed set
  current    the first chapter, in (module order, chapter order), that is not completed
  available  every other chapter that is not completed

`current` is a navigation hint, not an access gate: any published chapter may
be opened directly. Unpublished modules and chapters never reach this module
(see content_structure), so there is no locked state to report.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, Optional

from api.services.content_structure import SubjectStructure, load_subject_structure
from api.services.errors import ChapterNotFound
from api.services.progress_tracker import ProgressTracker, SubjectProgress, summarize_progress
from api.utils.logger import configure_logging

logger = configure_logging()


class ChapterState(str, Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    AVAILABLE = "available"


@dataclass(frozen=True)
class ChapterOutline:
    id: str
    module_id: str
    title: str
    order_index: int
    content_type: str
    state: ChapterState
    video_url: Optional[str] = None
    content_url: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.state == ChapterState.COMPLETED

    @property
    def current(self) -> bool:
        return self.state == ChapterState.CURRENT


@dataclass(frozen=True)
class ModuleOutline:
    id: str
    title: str
    order_index: int
    chapters: tuple[ChapterOutline, ...]
    completed: bool
    exam_id: Optional[str] = None

    @property
    def exam_available(self) -> bool:
        # Only modules in the published sequence are outlined at all.
        return self.exam_id is not None


@dataclass(frozen=True)
class CourseOutline:
    subject_id: str
    name: str
    modules: tuple[ModuleOutline, ...]
    current_chapter_id: Optional[str]
    progress: SubjectProgress

    def chapters(self) -> list[ChapterOutline]:
        return [c for m in self.modules for c in m.chapters]

    def next_chapter_id(self, chapter_id: str) -> Optional[str]:
        ids = [c.id for c in self.chapters()]
        try:
            pos = ids.index(chapter_id)
        except ValueError:
            return None
        return ids[pos + 1] if pos + 1 < len(ids) else None

    def module_of(self, chapter_id: str) -> Optional[str]:
        for m in self.modules:
            if any(c.id == chapter_id for c in m.chapters):
                return m.id
        return None


def build_outline(structure: SubjectStructure, completed_at: dict[str, datetime]) -> CourseOutline:
    current_id: Optional[str] = None
    for chapter in structure.chapters():
        if chapter.id not in completed_at:
            current_id = chapter.id
            break

    def state_of(chapter_id: str) -> ChapterState:
        if chapter_id in completed_at:
            return ChapterState.COMPLETED
        if chapter_id == current_id:
            return ChapterState.CURRENT
        return ChapterState.AVAILABLE

    modules = []
    for m in structure.modules:
        chapters = tuple(
            ChapterOutline(
                id=c.id,
                module_id=m.id,
                title=c.title,
                order_index=c.order_index,
                content_type=c.content_type,
                state=state_of(c.id),
                video_url=c.video_url,
                content_url=c.content_url,
            )
            for c in m.chapters
        )
        modules.append(
            ModuleOutline(
                id=m.id,
                title=m.title,
                order_index=m.order_index,
                chapters=chapters,
                # An empty module is never "complete".
                completed=bool(chapters) and all(c.completed for c in chapters),
                exam_id=m.exam_id,
            )
        )
    return CourseOutline(
        subject_id=structure.id,
        name=structure.name,
        modules=tuple(modules),
        current_chapter_id=current_id,
        progress=summarize_progress(structure.id, structure.chapter_ids(), completed_at),
    )


@dataclass
class ViewerState:
    selected_chapter_id: Optional[str] = None
    expanded_module_ids: list[str] = field(default_factory=list)

    def expand(self, module_id: Optional[str]) -> None:
        if module_id and module_id not in self.expanded_module_ids:
            self.expanded_module_ids.append(module_id)


@dataclass(frozen=True)
class AdvanceResult:
    outline: CourseOutline
    view: ViewerState
    completed_now: bool  # False when the chapter was already completed
    advanced: bool  # False at the last chapter


class CourseSequencer:
    def __init__(self, tracker: ProgressTracker, structure_loader: Optional[Callable[[str], SubjectStructure]] = None):
        self.tracker = tracker
        self._load = structure_loader or (lambda subject_id: load_subject_structure(tracker.db, subject_id))

    def outline(self, student_id: str, subject_id: str) -> CourseOutline:
        structure = self._load(subject_id)
        return build_outline(structure, self.tracker.completion_map(student_id, structure.chapter_ids()))

    def open_view(self, student_id: str, subject_id: str) -> tuple[CourseOutline, ViewerState]:
        """Initial viewer state: the current chapter, or the last one once everything is done."""
        outline = self.outline(student_id, subject_id)
        view = ViewerState()
        chapters = outline.chapters()
        if outline.current_chapter_id is not None:
            view.selected_chapter_id = outline.current_chapter_id
        elif chapters:
            view.selected_chapter_id = chapters[-1].id
        view.expand(outline.module_of(view.selected_chapter_id) if view.selected_chapter_id else None)
        return outline, view

    def on_content_ended(self, student_id: str, subject_id: str, chapter_id: str, expanded: Iterable[str] = ()) -> AdvanceResult:
        """Auto-advance after a content item reports natural completion (e.g. playback ended)."""
        logger.debug("content ended student=%s chapter=%s", student_id, chapter_id)
        return self._advance(student_id, subject_id, chapter_id, expanded)

    def next(self, student_id: str, subject_id: str, chapter_id: str, expanded: Iterable[str] = ()) -> AdvanceResult:
        """Manual "next": same steps as auto-advance, without waiting for the content to end."""
        return self._advance(student_id, subject_id, chapter_id, expanded)

    def _advance(self, student_id: str, subject_id: str, chapter_id: str, expanded: Iterable[str]) -> AdvanceResult:
        structure = self._load(subject_id)
        chapter_ids = structure.chapter_ids()
        if chapter_id not in chapter_ids:
            raise ChapterNotFound()

        # (a) completion; a no-op when the chapter is already completed.
        _, completed_now = self.tracker.complete_chapter(student_id, chapter_id)
        outline = build_outline(structure, self.tracker.completion_map(student_id, chapter_ids))

        # (b) move the selection to the next chapter, if there is one.
        view = ViewerState(selected_chapter_id=chapter_id, expanded_module_ids=list(dict.fromkeys(expanded)))
        next_id = outline.next_chapter_id(chapter_id)
        if next_id is not None:
            view.selected_chapter_id = next_id
            view.expand(outline.module_of(next_id))
        return AdvanceResult(outline=outline, view=view, completed_now=completed_now, advanced=next_id is not None)
