"""
Migration: one completion record per (student, chapter).

- chapter_progress: drop duplicate rows, keeping the earliest completion.
- chapter_progress: add unique index uq_chapter_progress_student_chapter.
"""

import sqlite3
import os


def run_migration():
    db_path = os.getenv("DATABASE_URL", "sqlite:///./lms.db").replace("sqlite:///", "")
    conn = None
    try:
        conn = sqlite3.connect(db_path)
        cursor = conn.cursor()

        cursor.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='chapter_progress'"
        )
        if not cursor.fetchone():
            print("chapter_progress table not found. Skipping.")
            return

        cursor.execute(
            """
            DELETE FROM chapter_progress
            WHERE rowid NOT IN (
                SELECT rowid FROM (
                    SELECT rowid,
                           ROW_NUMBER() OVER (
                               PARTITION BY student_id, chapter_id
                               ORDER BY completed_at ASC, rowid ASC
                           ) AS rn
                    FROM chapter_progress
                )
                WHERE rn = 1
            )
            """
        )
        print(f"chapter_progress: removed {cursor.rowcount} duplicate rows")

        cursor.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS uq_chapter_progress_student_chapter "
            "ON chapter_progress (student_id, chapter_id)"
        )
        print("chapter_progress: unique index on (student_id, chapter_id) in place")

        conn.commit()
        print("✓ Migration add_chapter_progress_unique completed successfully!")

    except sqlite3.Error as e:
        print(f"Error during migration: {e}")
        if conn:
            conn.rollback()
    finally:
        if conn:
            conn.close()


if __name__ == "__main__":
    run_migration()
