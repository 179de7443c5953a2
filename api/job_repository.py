"""
Job Repository - SQLite persistence for translation jobs and their files.

Every mutation touches a single row; deleting a job cascades to its files.
"""

import sqlite3
import uuid
from pathlib import Path
from typing import Optional, List
from datetime import datetime
from contextlib import contextmanager

from config.logging_config import get_logger
from core.batch.job_handler import FileRecord, Job, JobStatus, PipelineStep

logger = get_logger(__name__)


class JobRepository:
    """
    SQLite repository for jobs and files.

    Schema:
        jobs(id, created_at, updated_at, status, language, current_step, percentage)
        files(id, job_id -> jobs.id ON DELETE CASCADE, original_name, original_path,
              translated_name, translated_path, created_at, updated_at)
    """

    def __init__(self, db_path: str = "data/jobs.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()
        logger.info(f"JobRepository initialized: {self.db_path}")

    @contextmanager
    def _get_connection(self):
        """Get database connection with context manager."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception as e:
            conn.rollback()
            raise e
        finally:
            conn.close()

    def _init_db(self):
        """Initialize database schema."""
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS jobs (
                    id TEXT PRIMARY KEY,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'QUEUED',
                    language TEXT NOT NULL,
                    current_step TEXT,
                    percentage INTEGER NOT NULL DEFAULT 0
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS files (
                    id TEXT PRIMARY KEY,
                    job_id TEXT NOT NULL,
                    original_name TEXT NOT NULL,
                    original_path TEXT NOT NULL,
                    translated_name TEXT,
                    translated_path TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (job_id) REFERENCES jobs (id)
                        ON DELETE CASCADE ON UPDATE CASCADE
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_files_job_id
                ON files(job_id)
            """)

            logger.debug("Database schema initialized")

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def create_job(self, language: str) -> Job:
        """Create a QUEUED job with no step at 0%."""
        job = Job(id=str(uuid.uuid4()), language=language)

        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO jobs (id, created_at, updated_at, status, language, current_step, percentage)
                VALUES (?, ?, ?, ?, ?, NULL, 0)
            """, (
                job.id,
                job.created_at.isoformat(),
                job.updated_at.isoformat(),
                job.status.value,
                language,
            ))

        logger.info(f"[{job.id}] Job created ({language})")
        return job

    def get_job(self, job_id: str) -> Optional[Job]:
        """Get a job with its files."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM jobs WHERE id = ?",
                (job_id,)
            ).fetchone()

            if not row:
                return None

            job = self._row_to_job(row)
            job.files = self._load_files(conn, job_id)
            return job

    def list_jobs(self, limit: int = 50) -> List[Job]:
        """Get jobs with their files, most recent first."""
        with self._get_connection() as conn:
            rows = conn.execute("""
                SELECT * FROM jobs
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
            """, (limit,)).fetchall()

            jobs = []
            for row in rows:
                job = self._row_to_job(row)
                job.files = self._load_files(conn, job.id)
                jobs.append(job)
            return jobs

    def get_unfinished_jobs(self) -> List[Job]:
        """Get QUEUED/PROCESSING jobs, oldest first, for recovery after restart."""
        with self._get_connection() as conn:
            rows = conn.execute("""
                SELECT * FROM jobs
                WHERE status IN ('QUEUED', 'PROCESSING')
                ORDER BY created_at ASC, rowid ASC
            """).fetchall()

            jobs = []
            for row in rows:
                job = self._row_to_job(row)
                job.files = self._load_files(conn, job.id)
                jobs.append(job)
            return jobs

    def update_job_progress(
        self,
        job_id: str,
        status: JobStatus,
        step: Optional[PipelineStep],
        percentage: int,
    ) -> None:
        """Persist one state-machine transition."""
        with self._get_connection() as conn:
            cursor = conn.execute("""
                UPDATE jobs
                SET status = ?, current_step = ?, percentage = ?, updated_at = ?
                WHERE id = ?
            """, (
                status.value,
                step.value if step else None,
                percentage,
                datetime.now().isoformat(),
                job_id,
            ))
            if cursor.rowcount == 0:
                raise KeyError(f"unknown job {job_id}")

    def delete_job(self, job_id: str) -> bool:
        """Delete a job; its files go with it."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM jobs WHERE id = ?",
                (job_id,)
            )
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def add_file(self, job_id: str, name: str, path: str) -> FileRecord:
        """Record an uploaded file."""
        record = FileRecord(
            id=str(uuid.uuid4()),
            job_id=job_id,
            original_name=name,
            original_path=str(path),
        )

        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO files (
                    id, job_id, original_name, original_path,
                    translated_name, translated_path, created_at, updated_at
                ) VALUES (?, ?, ?, ?, NULL, NULL, ?, ?)
            """, (
                record.id,
                job_id,
                name,
                record.original_path,
                record.created_at.isoformat(),
                record.updated_at.isoformat(),
            ))

        return record

    def get_job_files(self, job_id: str) -> List[FileRecord]:
        """Get a job's files in upload order."""
        with self._get_connection() as conn:
            return self._load_files(conn, job_id)

    def update_file_translation(self, file_id: str, translated_name: str, translated_path: str) -> None:
        """Attach the translated artifact to a file."""
        with self._get_connection() as conn:
            cursor = conn.execute("""
                UPDATE files
                SET translated_name = ?, translated_path = ?, updated_at = ?
                WHERE id = ?
            """, (translated_name, str(translated_path), datetime.now().isoformat(), file_id))
            if cursor.rowcount == 0:
                raise KeyError(f"unknown file {file_id}")

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    def _load_files(self, conn: sqlite3.Connection, job_id: str) -> List[FileRecord]:
        rows = conn.execute("""
            SELECT * FROM files
            WHERE job_id = ?
            ORDER BY created_at ASC, rowid ASC
        """, (job_id,)).fetchall()
        return [self._row_to_file(row) for row in rows]

    def _row_to_job(self, row: sqlite3.Row) -> Job:
        """Convert database row to Job (files not loaded)."""
        return Job(
            id=row["id"],
            language=row["language"],
            status=JobStatus(row["status"]),
            current_step=PipelineStep(row["current_step"]) if row["current_step"] else None,
            percentage=row["percentage"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _row_to_file(self, row: sqlite3.Row) -> FileRecord:
        """Convert database row to FileRecord."""
        return FileRecord(
            id=row["id"],
            job_id=row["job_id"],
            original_name=row["original_name"],
            original_path=row["original_path"],
            translated_name=row["translated_name"],
            translated_path=row["translated_path"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
