"""
SQLite 잡 저장소

aiosql 쿼리(generation/sql/job.sql)를 호출마다 짧은 트랜잭션으로 실행합니다.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator

import aiosql
import aiosqlite

from common.clock import format_timestamp
from database import BaseDatabase, QueryExecutionError
from database.sqlite3 import TransactionContext
from generation.model.job import Job, JobStatus
from generation.repository.base import BaseJobRepository

logger = logging.getLogger(__name__)

SQL_PATH = Path(__file__).parent.parent / "sql" / "job.sql"


class SQLiteJobRepository(BaseJobRepository):
    """generation_jobs 테이블 저장소"""

    def __init__(self, db: BaseDatabase):
        self._db = db
        self._queries = aiosql.from_path(str(SQL_PATH), "aiosqlite")

    @asynccontextmanager
    async def _transaction(self, query_name: str, readonly: bool = False) -> AsyncIterator[TransactionContext]:
        """트랜잭션 + 드라이버 오류를 QueryExecutionError로 변환"""
        async with self._db.transaction(readonly=readonly) as ctx:
            try:
                yield ctx
            except aiosqlite.Error as e:
                raise QueryExecutionError(query_name, str(e)) from e

    @staticmethod
    def _row_to_job(row) -> Job:
        return Job(**dict(row))

    async def insert(self, job: Job) -> None:
        async with self._transaction("insert_job") as ctx:
            await self._queries.insert_job(
                ctx.connection,
                id=job.id,
                payload=job.payload,
                status=job.status.value,
                now=format_timestamp(),
            )
        logger.debug(f"Inserted job: id={job.id}, status={job.status.value}")

    async def get_by_id(self, job_id: str) -> Job | None:
        async with self._transaction("get_job_by_id", readonly=True) as ctx:
            row = await self._queries.get_job_by_id(ctx.connection, job_id=job_id)
        return self._row_to_job(row) if row else None

    async def list_all(self, status: JobStatus | None = None) -> list[Job]:
        async with self._transaction("get_all_jobs", readonly=True) as ctx:
            if status is None:
                rows = await self._queries.get_all_jobs(ctx.connection)
            else:
                rows = await self._queries.get_jobs_by_status(ctx.connection, status=status.value)
        return [self._row_to_job(row) for row in rows]

    async def update_status(
        self,
        job_id: str,
        status: JobStatus,
        error_message: str | None = None,
        *,
        result: str | None = None,
        expected_handle: str | None = None,
        expected_revision: int | None = None,
    ) -> bool:
        now = format_timestamp()

        if status.is_terminal:
            async with self._transaction("finish_job") as ctx:
                affected = await self._queries.finish_job(
                    ctx.connection,
                    job_id=job_id,
                    status=status.value,
                    error_message=error_message if status is JobStatus.FAILED else None,
                    result=result if status is JobStatus.SUCCEEDED else None,
                    expected_handle=expected_handle,
                    expected_revision=expected_revision,
                    now=now,
                )
            if affected == 0:
                logger.debug(f"Terminal update skipped: id={job_id}, status={status.value}, handle={expected_handle}")
            return affected > 0

        async with self._transaction("reopen_job") as ctx:
            affected = await self._queries.reopen_job(
                ctx.connection, job_id=job_id, status=status.value, now=now
            )
        return affected > 0

    async def update_handle(self, job_id: str, handle: str) -> bool:
        async with self._transaction("update_job_handle") as ctx:
            affected = await self._queries.update_job_handle(
                ctx.connection, job_id=job_id, scheduler_handle=handle, now=format_timestamp()
            )
        if affected == 0:
            logger.debug(f"Handle update skipped, job no longer processing: id={job_id}, handle={handle}")
        return affected > 0

    async def list_by_status_older_than(self, status: JobStatus, cutoff: datetime) -> list[Job]:
        async with self._transaction("get_jobs_by_status_older_than", readonly=True) as ctx:
            rows = await self._queries.get_jobs_by_status_older_than(
                ctx.connection, status=status.value, cutoff=format_timestamp(cutoff)
            )
        return [self._row_to_job(row) for row in rows]

    async def restore(self, job: Job) -> None:
        async with self._transaction("restore_job") as ctx:
            await self._queries.restore_job(
                ctx.connection,
                job_id=job.id,
                status=job.status.value,
                error_message=job.error_message,
                result=job.result,
                scheduler_handle=job.scheduler_handle,
                now=format_timestamp(),
            )
        logger.debug(f"Restored job: id={job.id}, status={job.status.value}")

    async def delete(self, job_id: str) -> bool:
        async with self._transaction("delete_job") as ctx:
            affected = await self._queries.delete_job(ctx.connection, job_id=job_id)
        return affected > 0
