"""
Admin database connection management and migrations.
"""
import asyncpg
import logging
from typing import Optional

logger = logging.getLogger(__name__)


async def create_db_pool(database_url: Optional[str]) -> Optional[asyncpg.Pool]:
    """Create the admin database pool, or return None when no URL is configured.

    The pool is owned by the application lifespan and stored on app.state.
    """
    if not database_url:
        logger.warning("ADMIN_DATABASE_URL not set, admin database mirror disabled")
        return None

    raw_url = database_url.replace("postgresql+asyncpg://", "postgresql://")

    async def setup_connection(conn):
        """Validate connection on acquire."""
        await conn.execute("SELECT 1")

    pool = await asyncpg.create_pool(
        raw_url,
        min_size=1,
        max_size=5,
        command_timeout=30,
        max_inactive_connection_lifetime=300.0,
        setup=setup_connection,
    )
    logger.info("Admin database connection pool created (min=1, max=5)")
    return pool


async def close_db_pool(pool: Optional[asyncpg.Pool]):
    """Close the admin database pool."""
    if pool is not None:
        await pool.close()
        logger.info("Admin database connection pool closed")


async def run_schema_migrations(pool: asyncpg.Pool):
    """Ensure the viva_results table and its unique call id constraint exist."""
    await pool.execute("""
        CREATE TABLE IF NOT EXISTS viva_results (
            id SERIAL PRIMARY KEY,
            timestamp TIMESTAMPTZ NOT NULL,
            student_name TEXT,
            student_email TEXT,
            subject TEXT,
            topics TEXT,
            questions_answered INTEGER DEFAULT 0,
            score TEXT,
            overall_feedback TEXT,
            transcript TEXT,
            recording_url TEXT,
            evaluation TEXT,
            vapi_call_id TEXT NOT NULL,
            teacher_email TEXT,
            marks_breakdown JSONB DEFAULT '[]'::jsonb,
            duration_seconds DOUBLE PRECISION,
            created_at TIMESTAMPTZ DEFAULT NOW()
        );
    """)
    await pool.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS viva_results_vapi_call_id_key
        ON viva_results (vapi_call_id);
    """)
    await pool.execute("""
        CREATE INDEX IF NOT EXISTS viva_results_student_email_idx
        ON viva_results (student_email);
    """)
    logger.info("viva_results table ensured")
