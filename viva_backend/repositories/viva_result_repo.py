"""
Viva result repository - handles admin database operations for viva results.
"""
import asyncpg
import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from viva_backend.models.results import VivaResultRecord
from viva_backend.utils.formatting import format_score

logger = logging.getLogger(__name__)


class VivaResultRepository:
    """Repository for the admin database mirror of viva results."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def insert_if_absent(self, record: VivaResultRecord) -> bool:
        """Insert a result row. Returns False if the call id is already stored."""
        evaluation = record.evaluation
        student_email = (record.student.email or "unknown@example.com").strip().lower()
        marks_breakdown = [m.model_dump(by_alias=True) for m in evaluation.marks]

        row_id = await self.pool.fetchval(
            """
            INSERT INTO viva_results
            (timestamp, student_name, student_email, subject, topics, questions_answered,
             score, overall_feedback, transcript, recording_url, evaluation, vapi_call_id,
             teacher_email, marks_breakdown, duration_seconds)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15)
            ON CONFLICT (vapi_call_id) DO NOTHING
            RETURNING id
            """,
            record.timestamp,
            record.student.name or "Unknown",
            student_email,
            record.student.subject or "Unknown Subject",
            record.student.topics or "",
            len(evaluation.marks),
            format_score(evaluation.percentage),
            evaluation.overall_feedback,
            record.transcript,
            record.recording_url,
            record.evaluation_json(),
            record.call_id,
            record.student.teacher_email or "",
            json.dumps(marks_breakdown),
            record.duration_seconds,
        )
        return row_id is not None

    async def exists(self, call_id: str) -> bool:
        return await self.pool.fetchval(
            "SELECT EXISTS (SELECT 1 FROM viva_results WHERE vapi_call_id = $1)",
            call_id,
        )

    async def find_teacher_email(self, subject: str) -> Optional[str]:
        """Look up the teacher for an active subject: exact name first, then a partial match."""
        if not subject or not subject.strip():
            return None

        email = await self.pool.fetchval(
            """
            SELECT teacher_email FROM subjects
            WHERE LOWER(TRIM(name)) = LOWER(TRIM($1)) AND status = 'active'
            LIMIT 1
            """,
            subject,
        )
        if email:
            return email

        return await self.pool.fetchval(
            """
            SELECT teacher_email FROM subjects
            WHERE LOWER(TRIM(name)) LIKE '%' || LOWER(TRIM($1)) || '%'
              AND status = 'active'
              AND teacher_email IS NOT NULL AND teacher_email != ''
            LIMIT 1
            """,
            subject,
        )

    @asynccontextmanager
    async def call_lock(self, call_id: str) -> AsyncIterator[None]:
        """Session-level advisory lock keyed by call id, shared across instances."""
        async with self.pool.acquire() as conn:
            await conn.execute("SELECT pg_advisory_lock(hashtext($1))", call_id)
            try:
                yield
            finally:
                await conn.execute("SELECT pg_advisory_unlock(hashtext($1))", call_id)
