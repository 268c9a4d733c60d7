"""
Result sink: stores exactly one result per call.

The Google Sheet is the primary store and the source of truth for "has this
call been stored". The admin database is a best-effort mirror with a unique
constraint on the call id.
"""
import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from googleapiclient.errors import HttpError

from viva_backend.models.results import SaveResult, VivaResultRecord
from viva_backend.repositories.viva_result_repo import VivaResultRepository
from viva_backend.services.sheets_service import (
    GoogleSheetsService,
    build_row,
    describe_http_error,
)

logger = logging.getLogger(__name__)

NOT_CONFIGURED_ERROR = "Google Sheets not configured"


class ResultSink:
    """Idempotent save of viva results to the sheet, mirrored to the admin DB."""

    def __init__(
        self,
        sheets: GoogleSheetsService,
        repository: Optional[VivaResultRepository] = None,
    ):
        self.sheets = sheets
        self.repository = repository
        self._local_locks: Dict[str, asyncio.Lock] = {}
        self._local_lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def _local_lock(self, call_id: str) -> AsyncIterator[None]:
        lock = self._local_locks.setdefault(call_id, asyncio.Lock())
        self._local_lock_users[call_id] = self._local_lock_users.get(call_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._local_lock_users[call_id] -= 1
            if not self._local_lock_users[call_id]:
                del self._local_lock_users[call_id]
                del self._local_locks[call_id]

    @asynccontextmanager
    async def _call_lock(self, call_id: str) -> AsyncIterator[None]:
        # Cross-instance lock when the admin DB is reachable, otherwise per process.
        async with AsyncExitStack() as stack:
            if self.repository is not None:
                try:
                    await stack.enter_async_context(self.repository.call_lock(call_id))
                except Exception as e:
                    logger.warning(f"Admin DB lock unavailable for call {call_id}, using local lock: {e}")
                else:
                    yield
                    return
            await stack.enter_async_context(self._local_lock(call_id))
            yield

    async def save(self, record: VivaResultRecord) -> SaveResult:
        """Store the record unless its call id is already present."""
        result = await self._save_primary(record)
        result.admin_db_saved = await self.mirror(record)
        return result

    async def _save_primary(self, record: VivaResultRecord) -> SaveResult:
        if not self.sheets.is_configured:
            logger.error(f"Cannot save result for call {record.call_id}: {NOT_CONFIGURED_ERROR}")
            return SaveResult(success=False, error=NOT_CONFIGURED_ERROR, retryable=False)

        async with self._call_lock(record.call_id):
            try:
                await self.sheets.ensure_schema()
                if await self.sheets.call_id_exists(record.call_id):
                    logger.info(f"Result for call {record.call_id} already exists, skipping append")
                    return SaveResult(success=True, error=SaveResult.ALREADY_EXISTS)

                await self.sheets.append_row(build_row(record))
            except HttpError as e:
                logger.error(f"Sheets save failed for call {record.call_id}: {describe_http_error(e)}")
                return SaveResult(success=False, error=str(e))

        logger.info(f"Stored result for call {record.call_id}")
        return SaveResult(success=True)

    async def mirror(self, record: VivaResultRecord) -> bool:
        """Best-effort copy to the admin database. Never raises."""
        if self.repository is None:
            return False
        try:
            inserted = await self.repository.insert_if_absent(record)
        except Exception as e:
            logger.warning(f"Admin DB mirror failed for call {record.call_id}: {e}")
            return False
        if not inserted:
            logger.info(f"Admin DB already has call {record.call_id}")
        return True
