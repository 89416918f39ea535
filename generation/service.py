"""
JobSubmissionService: 생성 잡 제출/재시도 모듈

잡을 먼저 저장한 뒤 스케줄러에 디스패치하고, 돌려받은 handle을 기록합니다.
저장과 handle 기록 사이에 프로세스가 죽으면 handle 없는 PROCESSING 잡이 남고,
이 잡은 ReconciliationSweeper가 실패로 정리합니다.
"""

import logging
from typing import Any

from generation.model.job import Job, JobStatus
from generation.repository.base import BaseJobRepository
from scheduler.adapter.base import BaseSchedulerAdapter
from scheduler.exception import TransientDispatchError

logger = logging.getLogger(__name__)


class JobSubmissionService:
    """
    생성 잡 제출 서비스

    Args:
        repository: 잡 저장소
        scheduler: 스케줄러 어댑터 (주입)
    """

    def __init__(self, repository: BaseJobRepository, scheduler: BaseSchedulerAdapter):
        self._repository = repository
        self._scheduler = scheduler

    async def submit(self, payload: Any) -> str:
        """
        잡 제출

        Args:
            payload: 호출자가 검증한 잡 입력 (dict는 JSON으로 직렬화)

        Returns:
            str: job id

        Raises:
            TransientDispatchError: 디스패치 실패 (잡은 PENDING으로 남음)
        """
        job = Job.create(payload)
        await self._repository.insert(job)

        try:
            handle = await self._scheduler.enqueue(job.id, job.payload)
        except TransientDispatchError as e:
            logger.warning(f"Dispatch failed, job left pending: id={job.id}, error={e}")
            await self._repository.update_status(job.id, JobStatus.PENDING)
            raise

        if not await self._repository.update_handle(job.id, handle):
            logger.warning(f"Job finished before handle was recorded: id={job.id}, handle={handle}")
        logger.info(f"Submitted job: id={job.id}, handle={handle}")
        return job.id

    async def retry(self, job_id: str) -> None:
        """
        잡 재시도 (같은 payload로 재디스패치)

        잡이 없으면 아무것도 하지 않습니다.

        Raises:
            TransientDispatchError: 디스패치 실패 (잡은 재시도 전 상태로 복구)
        """
        job = await self._repository.get_by_id(job_id)
        if job is None:
            logger.debug(f"Retry ignored, job not found: id={job_id}")
            return

        await self._repository.update_status(job_id, JobStatus.PROCESSING)

        try:
            handle = await self._scheduler.enqueue(job_id, job.payload)
        except TransientDispatchError as e:
            logger.warning(f"Retry dispatch failed, restoring job: id={job_id}, error={e}")
            await self._repository.restore(job)
            raise

        if not await self._repository.update_handle(job_id, handle):
            logger.warning(f"Job finished before handle was recorded: id={job_id}, handle={handle}")
        logger.info(
            f"Retried job: id={job_id}, previous_status={job.status.value}, "
            f"previous_handle={job.scheduler_handle}, handle={handle}"
        )

    async def get_by_id(self, job_id: str) -> Job | None:
        return await self._repository.get_by_id(job_id)

    async def list_all(self, status: JobStatus | None = None) -> list[Job]:
        return await self._repository.list_all(status)

    async def delete(self, job_id: str) -> bool:
        """잡 삭제 (관리 작업, 라이프사이클 외부)"""
        deleted = await self._repository.delete(job_id)
        if deleted:
            logger.info(f"Deleted job: id={job_id}")
        return deleted
