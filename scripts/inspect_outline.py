#!/usr/bin/env python3
"""
Print a student's course outline: modules, chapters with their derived state,
the current chapter and the subject progress.

Run: python scripts/inspect_outline.py <subject_id> <student_email>
     python scripts/inspect_outline.py <subject_id> <student_email> -o outline.json

Reads DATABASE_URL (default sqlite:///./lms.db).
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

_project_root = Path(__file__).resolve().parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

_MARKS = {"completed": "[x]", "current": "[>]", "available": "[ ]"}


def main() -> int:
    parser = argparse.ArgumentParser(description="Show a student's outline and progress for one subject.")
    parser.add_argument("subject_id", help="Subject id")
    parser.add_argument("student_email", help="Student email")
    parser.add_argument("--output", "-o", default=None, help="Write outline to JSON file")
    args = parser.parse_args()

    from api.config import SessionLocal
    from api.services.course_sequencer import CourseSequencer
    from api.services.errors import SubjectNotFound
    from api.services.progress_tracker import ProgressTracker
    from api.utils.auth import get_user_by_email
    from api.utils.common import outline_response

    db = SessionLocal()
    try:
        student = get_user_by_email(args.student_email, db)
        if student is None:
            print(f"No user with email {args.student_email}", file=sys.stderr)
            return 1
        try:
            outline, view = CourseSequencer(ProgressTracker(db)).open_view(student.id, args.subject_id)
        except SubjectNotFound:
            print(f"Subject {args.subject_id} not found", file=sys.stderr)
            return 1
    finally:
        db.close()

    print(f"{outline.name}  {outline.progress.completed_chapters}/{outline.progress.total_chapters} ({outline.progress.percentage}%)")
    for m in outline.modules:
        exam = f"  exam={m.exam_id}" if m.exam_id else ""
        print(f"  {'[x]' if m.completed else '[ ]'} {m.order_index}. {m.title}{exam}")
        for c in m.chapters:
            print(f"      {_MARKS[c.state.value]} {c.order_index}. {c.title} ({c.content_type})")
    print(f"\nSelected: {view.selected_chapter_id}")

    if args.output:
        Path(args.output).write_text(
            json.dumps(outline_response(outline, view).model_dump(), indent=2), encoding="utf-8"
        )
        print(f"Saved to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
