"""생성 잡 관리 핸들러"""

import logging

from database import get_db
from admin.api.model.common import PageParams
from admin.api.model.job import JobResponse, SubmitRequest, SweepResponse
from admin.exception import JobNotFoundError
from generation.model.job import JobStatus
from generation.repository.sqlite import SQLiteJobRepository
from generation.service import JobSubmissionService
from scheduler.adapter.base import BaseSchedulerAdapter
from scheduler.adapter.worker import WorkerSchedulerAdapter
from sweeper.main import ReconciliationSweeper
from sweeper.model.sweeper import SweeperConfig

logger = logging.getLogger(__name__)


class JobHandler:
    """
    생성 잡 관리 핸들러

    서비스/보정기는 첫 요청 시 DatabaseRegistry의 DB로 생성합니다.
    configure()로 잡 DB, 스케줄러(worker) DB, 생성 핸들러, 스케줄러 어댑터를 바꿀 수 있습니다.
    """

    def __init__(self):
        self._database = "default"
        self._scheduler_database: str | None = None
        self._handler_name = "sample_generation"
        self._timeout_seconds = 600
        self._sweeper_config = SweeperConfig()
        self._scheduler: BaseSchedulerAdapter | None = None
        self._service: JobSubmissionService | None = None
        self._sweeper: ReconciliationSweeper | None = None

    def configure(
        self,
        database: str = "default",
        handler_name: str = "sample_generation",
        timeout_seconds: int = 600,
        sweeper_config: SweeperConfig | None = None,
        scheduler_database: str | None = None,
        scheduler: BaseSchedulerAdapter | None = None,
    ) -> None:
        """설정 변경 (이미 만든 서비스는 폐기)"""
        self._database = database
        self._scheduler_database = scheduler_database
        self._handler_name = handler_name
        self._timeout_seconds = timeout_seconds
        self._sweeper_config = sweeper_config or SweeperConfig(database=database)
        self._scheduler = scheduler
        self._service = None
        self._sweeper = None

    def _build(self) -> None:
        db = get_db(self._database)
        repository = SQLiteJobRepository(db)
        # work_executions는 WorkerPool이 폴링하는 DB에 둠
        scheduler_db = get_db(self._scheduler_database or self._database)
        scheduler = self._scheduler or WorkerSchedulerAdapter(
            scheduler_db, self._handler_name, timeout_seconds=self._timeout_seconds
        )
        self._service = JobSubmissionService(repository, scheduler)
        self._sweeper = ReconciliationSweeper(repository, scheduler, self._sweeper_config)
        logger.debug(f"JobHandler initialized (database={self._database}, handler={self._handler_name})")

    @property
    def service(self) -> JobSubmissionService:
        if self._service is None:
            self._build()
        return self._service

    @property
    def sweeper(self) -> ReconciliationSweeper:
        if self._sweeper is None:
            self._build()
        return self._sweeper

    async def submit(self, request: SubmitRequest) -> JobResponse:
        """
        잡 제출

        Raises:
            TransientDispatchError: 디스패치 실패
        """
        job_id = await self.service.submit(request.payload)
        return await self.get_by_id(job_id)

    async def get_list(
        self,
        page: int = 1,
        size: int = 20,
        status: JobStatus | None = None,
    ) -> tuple[list[JobResponse], int]:
        """잡 목록 조회 (최신순)"""
        params = PageParams(page=page, size=size)
        jobs = await self.service.list_all(status)
        items = jobs[params.offset:params.offset + params.size]
        return [JobResponse.from_job(job) for job in items], len(jobs)

    async def get_by_id(self, job_id: str) -> JobResponse:
        """ID로 잡 조회"""
        job = await self.service.get_by_id(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return JobResponse.from_job(job)

    async def retry(self, job_id: str) -> JobResponse:
        """
        잡 재시도

        Raises:
            JobNotFoundError: 잡 없음
            TransientDispatchError: 디스패치 실패 (잡은 이전 상태로 복구됨)
        """
        await self.get_by_id(job_id)
        await self.service.retry(job_id)
        return await self.get_by_id(job_id)

    async def delete(self, job_id: str) -> None:
        """잡 삭제"""
        if not await self.service.delete(job_id):
            raise JobNotFoundError(job_id)

    async def sweep(self) -> SweepResponse:
        """보정 즉시 실행"""
        report = await self.sweeper.sweep()
        return SweepResponse(
            scanned=report.scanned,
            succeeded=report.succeeded,
            failed=report.failed,
            untouched=report.untouched,
        )
