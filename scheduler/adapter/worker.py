"""
WorkerSchedulerAdapter: work_executions 테이블 기반 스케줄러 어댑터

enqueue는 PENDING 실행 레코드를 만들고 UUID handle을 돌려줍니다.
실제 실행은 WorkerPool(worker.main)이 폴링하여 처리합니다.
"""

import json
import logging
import uuid
from pathlib import Path

import aiosql
import aiosqlite

from common.clock import format_timestamp
from database import BaseDatabase, DatabaseError
from scheduler.adapter.base import BaseSchedulerAdapter
from scheduler.exception import (
    MalformedHandleError,
    SchedulerUnavailableError,
    TransientDispatchError,
)
from scheduler.model.outcome import Outcome

logger = logging.getLogger(__name__)

SQL_PATH = Path(__file__).parent.parent / "sql" / "scheduler.sql"

_STATUS_TO_OUTCOME = {
    "PENDING": lambda row: Outcome.running(),
    "RUNNING": lambda row: Outcome.running(),
    "SUCCESS": lambda row: Outcome.succeeded(row["result"]),
    "FAILED": lambda row: Outcome.failed(row["error_message"]),
    "CANCELLED": lambda row: Outcome.cancelled(),
}


class WorkerSchedulerAdapter(BaseSchedulerAdapter):
    """
    WorkerPool용 스케줄러 어댑터

    Args:
        db: work_executions 테이블이 있는 DB
        handler_name: 실행할 핸들러 이름 (@handler로 등록된 이름)
        timeout_seconds: 실행 1회당 타임아웃
    """

    def __init__(self, db: BaseDatabase, handler_name: str, timeout_seconds: int = 600):
        self._db = db
        self._handler_name = handler_name
        self._timeout_seconds = timeout_seconds
        self._queries = aiosql.from_path(str(SQL_PATH), "aiosqlite")

    async def enqueue(self, job_id: str, payload: str) -> str:
        handle = str(uuid.uuid4())
        params = json.dumps({"job_id": job_id, "payload": payload}, ensure_ascii=False)

        try:
            async with self._db.transaction() as ctx:
                await self._queries.create_execution(
                    ctx.connection,
                    handle=handle,
                    job_id=job_id,
                    handler_name=self._handler_name,
                    params=params,
                    timeout_seconds=self._timeout_seconds,
                    now=format_timestamp(),
                )
        except (DatabaseError, aiosqlite.Error) as e:
            raise TransientDispatchError(job_id, f"Failed to enqueue job {job_id}: {e}") from e

        logger.info(f"Enqueued execution: job_id={job_id}, handle={handle}, handler={self._handler_name}")
        return handle

    async def query_outcome(self, handle: str) -> Outcome:
        _validate_handle(handle)

        try:
            async with self._db.transaction(readonly=True) as ctx:
                row = await self._queries.get_execution_by_handle(ctx.connection, handle=handle)
        except (DatabaseError, aiosqlite.Error) as e:
            raise SchedulerUnavailableError(f"Failed to query execution {handle}: {e}") from e

        if row is None:
            return Outcome.unknown()

        to_outcome = _STATUS_TO_OUTCOME.get(row["status"])
        if to_outcome is None:
            logger.warning(f"Unexpected execution status: handle={handle}, status={row['status']}")
            return Outcome.unknown()
        return to_outcome(row)

    async def cancel(self, handle: str) -> bool:
        """
        대기 중인 실행 취소

        Returns:
            True: 취소됨
            False: 이미 실행 중이거나 종료됨 (또는 handle 없음)
        """
        _validate_handle(handle)

        async with self._db.transaction() as ctx:
            affected = await self._queries.cancel_execution(
                ctx.connection, handle=handle, now=format_timestamp()
            )

        if affected > 0:
            logger.info(f"Cancelled execution: handle={handle}")
        return affected > 0


def _validate_handle(handle: str) -> None:
    try:
        uuid.UUID(str(handle))
    except ValueError:
        raise MalformedHandleError(handle)
