"""
ReconciliationSweeper: 잡 상태 보정 모듈

PROCESSING 상태로 오래 머문 잡을 찾아 스케줄러에 실제 결과를 조회하고,
저장된 상태를 관측 결과에 맞춰 고칩니다. 스케줄러 상태를 알 수 없으면
성공으로 추정하지 않고 실패로 기록합니다.

실행 방법:
    python main.py sweeper
"""

import asyncio
import logging
from datetime import datetime, timedelta

from croniter import croniter

from common.clock import utc_now
from database import DatabaseError
from generation.model.job import Job, JobStatus
from generation.repository.base import BaseJobRepository
from scheduler.adapter.base import BaseSchedulerAdapter
from scheduler.model.outcome import Outcome, OutcomeKind
from sweeper.model.sweeper import SweeperConfig, SweepReport

logger = logging.getLogger(__name__)

REASON_NOT_STARTED = "job was not properly started"
REASON_FAILED = "job failed"
REASON_CANCELLED = "job was cancelled"
REASON_TIMED_OUT = "job timed out"

# 관측 결과 -> (보정 상태, 기본 사유). None이면 손대지 않음
REPAIRS: dict[OutcomeKind, tuple[JobStatus, str | None] | None] = {
    OutcomeKind.RUNNING: None,
    OutcomeKind.SUCCEEDED: (JobStatus.SUCCEEDED, None),
    OutcomeKind.FAILED: (JobStatus.FAILED, REASON_FAILED),
    OutcomeKind.CANCELLED: (JobStatus.FAILED, REASON_CANCELLED),
    OutcomeKind.UNKNOWN: (JobStatus.FAILED, REASON_TIMED_OUT),
}


class ReconciliationSweeper:
    """
    잡 상태 보정기

    sweep()은 요청 시 1회 실행하고, start()는 cron 주기로 반복 실행합니다.
    개별 잡의 스케줄러 조회 오류는 흡수하고, 저장소 오류는 호출자에게 전파합니다.
    """

    def __init__(
        self,
        repository: BaseJobRepository,
        scheduler: BaseSchedulerAdapter,
        config: SweeperConfig | None = None,
    ):
        self._repository = repository
        self._scheduler = scheduler
        self._config = config or SweeperConfig()
        self._running = False
        self._stop_event: asyncio.Event | None = None

    async def sweep(self, now: datetime | None = None) -> SweepReport:
        """
        오래된 PROCESSING 잡 보정

        Args:
            now: 기준 시각 (기본값: 현재 UTC)

        Raises:
            DatabaseError: 저장소 오류 (모든 잡을 시도한 뒤 첫 오류를 전파)
        """
        now = now or utc_now()
        cutoff = now - timedelta(seconds=self._config.stale_threshold_seconds)
        jobs = await self._repository.list_by_status_older_than(JobStatus.PROCESSING, cutoff)

        report = SweepReport(scanned=len(jobs))
        if not jobs:
            logger.debug("No stale jobs found")
            return report

        logger.info(f"Reconciling {len(jobs)} stale jobs (cutoff={cutoff.isoformat()})")

        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        async def reconcile_one(job: Job) -> None:
            async with semaphore:
                repaired = await self._reconcile(job)
            if repaired is JobStatus.SUCCEEDED:
                report.succeeded.append(job.id)
            elif repaired is JobStatus.FAILED:
                report.failed.append(job.id)
            else:
                report.untouched.append(job.id)

        results = await asyncio.gather(*(reconcile_one(job) for job in jobs), return_exceptions=True)

        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            logger.error(f"Sweep finished with {len(errors)} persistence errors")
            raise errors[0]

        logger.info(
            f"Sweep finished: scanned={report.scanned}, succeeded={len(report.succeeded)}, "
            f"failed={len(report.failed)}, untouched={len(report.untouched)}"
        )
        return report

    async def _reconcile(self, job: Job) -> JobStatus | None:
        """
        잡 1건 보정

        Returns:
            보정한 상태 (보정하지 않았으면 None)
        """
        if job.scheduler_handle is None:
            logger.warning(f"Stale job has no scheduler handle: id={job.id}")
            return await self._repair(job, JobStatus.FAILED, REASON_NOT_STARTED)

        outcome = await self._query_outcome(job)
        repair = REPAIRS[outcome.kind]
        if repair is None:
            logger.debug(f"Job still running in scheduler: id={job.id}, handle={job.scheduler_handle}")
            return None

        status, reason = repair
        if outcome.kind is OutcomeKind.FAILED and outcome.reason:
            reason = outcome.reason
        return await self._repair(job, status, reason, result=outcome.result)

    async def _query_outcome(self, job: Job) -> Outcome:
        """스케줄러 조회 (오류는 UNKNOWN으로 취급)"""
        try:
            return await self._scheduler.query_outcome(job.scheduler_handle)
        except Exception as e:
            logger.error(f"Failed to query scheduler: id={job.id}, handle={job.scheduler_handle}, error={e}")
            return Outcome.unknown()

    async def _repair(self, job: Job, status: JobStatus, reason: str | None, result: str | None = None) -> JobStatus | None:
        applied = await self._repository.update_status(
            job.id,
            status,
            reason,
            result=result,
            expected_handle=job.scheduler_handle,
            expected_revision=job.revision,
        )
        if not applied:
            logger.info(f"Job changed during sweep, skipped: id={job.id}")
            return None

        logger.warning(f"Repaired stale job: id={job.id}, status={status.value}, reason={reason}")
        return status

    async def start(self) -> None:
        """cron 주기 반복 실행"""
        if self._running:
            logger.warning("Sweeper is already running")
            return

        self._running = True
        self._stop_event = asyncio.Event()
        logger.info(
            f"Sweeper started (schedule='{self._config.schedule}', "
            f"stale_threshold={self._config.stale_threshold_seconds}s)"
        )

        try:
            if self._config.run_on_start:
                await self._run_once()
            while self._running:
                await self._sleep(self._calculate_next_sleep(utc_now()))
                if not self._running:
                    break
                await self._run_once()
        except asyncio.CancelledError:
            logger.info("Sweeper cancelled")
        finally:
            self._running = False
            logger.info("Sweeper stopped")

    async def stop(self) -> None:
        """Sweeper graceful shutdown"""
        if not self._running:
            return

        logger.info("Stopping sweeper...")
        self._running = False
        if self._stop_event:
            self._stop_event.set()

    async def _run_once(self) -> None:
        """주기 실행 1회 (오류는 기록하고 다음 주기로)"""
        try:
            await self.sweep()
        except DatabaseError as e:
            logger.error(f"Database error during sweep: {e}. Continuing...")
        except Exception as e:
            logger.error(f"Unexpected error during sweep: {e}", exc_info=True)

    async def _sleep(self, seconds: float) -> None:
        """인터럽트 가능한 sleep"""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def _calculate_next_sleep(self, now: datetime) -> float:
        """다음 cron 실행 시각까지 대기 시간 (최소 1초)"""
        next_time = croniter(self._config.schedule, now).get_next(datetime)
        return max(1.0, (next_time - now).total_seconds())

    @property
    def is_running(self) -> bool:
        return self._running
