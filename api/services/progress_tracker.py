"""
Per-student chapter completion and the derived subject progress.

Completion records are only ever added (set union on the completed-chapter
set), which makes complete_chapter idempotent and safe to repeat. Subject
progress is never stored or cached: every read reloads the subject's currently
published chapters and intersects them with the student's completions. Only
the completion map is cached, and complete_chapter is its only writer, so the
invalidation it publishes keeps the cache exact.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional
from uuid import uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from api.models.models import Chapter, ChapterProgress, Module
from api.services.content_structure import load_subject_structure
from api.services.errors import ChapterNotFound
from api.services.invalidation import InvalidationBus, ViewCache, completions_key
from api.utils.logger import configure_logging

logger = configure_logging()


@dataclass(frozen=True)
class SubjectProgress:
    subject_id: str
    total_chapters: int
    completed_chapters: int
    percentage: int
    completed_chapter_ids: tuple[str, ...] = ()
    last_activity_at: Optional[datetime] = None


def completion_percentage(completed: int, total: int) -> int:
    """floor(completed / total * 100); 0 for a subject with no chapters."""
    if total <= 0:
        return 0
    return (completed * 100) // total


def summarize_progress(subject_id: str, chapter_ids: Iterable[str], completed_at: dict[str, datetime]) -> SubjectProgress:
    """Intersect the completion map with the subject's chapter set."""
    chapter_ids = list(chapter_ids)
    done = [cid for cid in chapter_ids if cid in completed_at]
    return SubjectProgress(
        subject_id=subject_id,
        total_chapters=len(chapter_ids),
        completed_chapters=len(done),
        percentage=completion_percentage(len(done), len(chapter_ids)),
        completed_chapter_ids=tuple(done),
        last_activity_at=max((completed_at[cid] for cid in done), default=None),
    )


class ProgressTracker:
    def __init__(self, db: Session, bus: Optional[InvalidationBus] = None, cache: Optional[ViewCache] = None):
        self.db = db
        self.bus = bus
        self.cache = cache

    def complete_chapter(self, student_id: str, chapter_id: str) -> tuple[ChapterProgress, bool]:
        """
        Mark a published chapter complete for a student.

        Returns (record, created). Repeating the call returns the existing
        record with created=False and publishes no invalidation.
        """
        subject_id = self.subject_of_chapter(chapter_id)

        existing = self._find(student_id, chapter_id)
        if existing is not None:
            logger.debug("chapter already completed student=%s chapter=%s", student_id, chapter_id)
            return existing, False

        record = ChapterProgress(
            id=str(uuid4()),
            student_id=student_id,
            chapter_id=chapter_id,
            completed=True,
            completed_at=datetime.utcnow(),
        )
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent request inserted the same (student, chapter) first.
            self.db.rollback()
            existing = self._find(student_id, chapter_id)
            if existing is None:
                raise
            return existing, False
        self.db.refresh(record)

        logger.info("chapter completed student=%s chapter=%s subject=%s", student_id, chapter_id, subject_id)
        if self.cache is not None:
            self.cache.invalidate(completions_key(student_id))
        if self.bus is not None:
            self.bus.publish(
                ("subject-progress", student_id),
                ("courses-progress", student_id),
                ("course-chapters", subject_id),
            )
        return record, True

    def subject_of_chapter(self, chapter_id: str) -> str:
        """Subject id of a published chapter in a published module; ChapterNotFound otherwise."""
        row = (
            self.db.query(Module.subject_id)
            .join(Chapter, Chapter.module_id == Module.id)
            .filter(Chapter.id == chapter_id, Chapter.is_published == True, Module.is_published == True)  # noqa: E712
            .first()
        )
        if row is None:
            raise ChapterNotFound()
        return row.subject_id

    def _find(self, student_id: str, chapter_id: str) -> Optional[ChapterProgress]:
        return (
            self.db.query(ChapterProgress)
            .filter(ChapterProgress.student_id == student_id, ChapterProgress.chapter_id == chapter_id)
            .first()
        )

    def completed_chapters(self, student_id: str) -> dict[str, datetime]:
        """chapter id -> completion time for every chapter the student has completed."""
        key = completions_key(student_id)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        rows = (
            self.db.query(ChapterProgress.chapter_id, ChapterProgress.completed_at)
            .filter(ChapterProgress.student_id == student_id, ChapterProgress.completed == True)  # noqa: E712
            .all()
        )
        completed = {chapter_id: completed_at for chapter_id, completed_at in rows}

        if self.cache is not None:
            self.cache.set(key, completed)
        return completed

    def completion_map(self, student_id: str, chapter_ids: Iterable[str]) -> dict[str, datetime]:
        """chapter id -> completion time, for the given chapters the student has completed."""
        completed = self.completed_chapters(student_id)
        return {cid: completed[cid] for cid in chapter_ids if cid in completed}

    def get_subject_progress(self, student_id: str, subject_id: str) -> SubjectProgress:
        """
        Derived progress for (student, subject), rebuilt from the published
        structure on every call. A student with no completion records gets
        zero progress, not an error.
        """
        structure = load_subject_structure(self.db, subject_id)
        chapter_ids = structure.chapter_ids()
        return summarize_progress(subject_id, chapter_ids, self.completion_map(student_id, chapter_ids))

    async def get_multiple_subjects_progress(self, student_id: str, subject_ids: Iterable[str]) -> dict[str, SubjectProgress]:
        """
        Fan out get_subject_progress. A subject whose read fails is logged and
        left out of the mapping; it is never reported as zero progress.
        """
        ids = list(dict.fromkeys(subject_ids))
        results = await asyncio.gather(
            *(self._fetch_subject_progress(student_id, sid) for sid in ids),
            return_exceptions=True,
        )
        out: dict[str, SubjectProgress] = {}
        for sid, result in zip(ids, results):
            if isinstance(result, Exception):
                logger.warning("subject progress unavailable student=%s subject=%s error=%r", student_id, sid, result)
                continue
            out[sid] = result
        return out

    async def _fetch_subject_progress(self, student_id: str, subject_id: str) -> SubjectProgress:
        try:
            return self.get_subject_progress(student_id, subject_id)
        except SQLAlchemyError:
            self.db.rollback()
            raise
