"""
Read-only view of a subject's published content: ordered modules, each with
ordered chapters. Unpublished modules and chapters are filtered out here, so
progress and sequencing only ever see what a student can see.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from api.models.models import Chapter, Exam, Module, Subject
from api.services.errors import SubjectNotFound


@dataclass(frozen=True)
class ChapterNode:
    id: str
    module_id: str
    title: str
    order_index: int
    content_type: str  # video|pdf|content
    video_url: Optional[str] = None
    content_url: Optional[str] = None


@dataclass(frozen=True)
class ModuleNode:
    id: str
    title: str
    order_index: int
    chapters: tuple[ChapterNode, ...]
    exam_id: Optional[str] = None


@dataclass(frozen=True)
class SubjectStructure:
    id: str
    name: str
    modules: tuple[ModuleNode, ...]

    def chapters(self) -> list[ChapterNode]:
        """All chapters in sequence order (module order, then chapter order)."""
        return [c for m in self.modules for c in m.chapters]

    def chapter_ids(self) -> list[str]:
        return [c.id for c in self.chapters()]


def chapter_content_type(video_url: Optional[str], content_url: Optional[str]) -> str:
    if video_url:
        return "video"
    if content_url and content_url.lower().endswith(".pdf"):
        return "pdf"
    return "content"


def load_subject_structure(db: Session, subject_id: str) -> SubjectStructure:
    subject = db.query(Subject).filter(Subject.id == subject_id).first()
    if subject is None:
        raise SubjectNotFound()
    modules = (
        db.query(Module)
        .filter(Module.subject_id == subject_id, Module.is_published == True)  # noqa: E712
        .order_by(Module.order_index.asc(), Module.created_at.asc())
        .all()
    )
    module_ids = [m.id for m in modules]
    chapters_by_mid: dict[str, list[Chapter]] = {mid: [] for mid in module_ids}
    exam_by_mid: dict[str, str] = {}
    if module_ids:
        chapters = (
            db.query(Chapter)
            .filter(Chapter.module_id.in_(module_ids), Chapter.is_published == True)  # noqa: E712
            .order_by(Chapter.order_index.asc(), Chapter.created_at.asc())
            .all()
        )
        for c in chapters:
            chapters_by_mid[c.module_id].append(c)
        exam_by_mid = {
            e.module_id: e.id for e in db.query(Exam).filter(Exam.module_id.in_(module_ids)).all()
        }
    return SubjectStructure(
        id=subject.id,
        name=subject.name,
        modules=tuple(
            ModuleNode(
                id=m.id,
                title=m.title,
                order_index=m.order_index,
                exam_id=exam_by_mid.get(m.id),
                chapters=tuple(
                    ChapterNode(
                        id=c.id,
                        module_id=m.id,
                        title=c.title,
                        order_index=c.order_index,
                        content_type=chapter_content_type(c.video_url, c.content_url),
                        video_url=c.video_url,
                        content_url=c.content_url,
                    )
                    for c in chapters_by_mid[m.id]
                ),
            )
            for m in modules
        ),
    )
