"""
CompletionRecorder: 실행 완료 콜백

WorkerPool이 실행을 종료 상태로 기록한 직후 호출됩니다.
잡의 현재 handle이 실행 handle과 같을 때만 결과를 잡에 반영합니다.
이 콜백이 실행되지 못한 경우(프로세스 종료 등)는 Sweeper가 보정합니다.
"""

import logging

from generation.model.job import JobStatus
from generation.repository.base import BaseJobRepository
from scheduler.model.outcome import Outcome, OutcomeKind
from worker.model.executor import JobInfo

logger = logging.getLogger(__name__)


class CompletionRecorder:
    """실행 결과 -> 잡 상태 반영"""

    def __init__(self, repository: BaseJobRepository):
        self._repository = repository

    async def __call__(self, job_info: JobInfo, outcome: Outcome) -> None:
        if not job_info.job_id:
            return

        if outcome.kind is OutcomeKind.SUCCEEDED:
            applied = await self._repository.update_status(
                job_info.job_id,
                JobStatus.SUCCEEDED,
                result=outcome.result,
                expected_handle=job_info.handle,
            )
        elif outcome.kind is OutcomeKind.FAILED:
            applied = await self._repository.update_status(
                job_info.job_id,
                JobStatus.FAILED,
                outcome.reason or "job failed",
                expected_handle=job_info.handle,
            )
        else:
            return

        if applied:
            logger.info(f"Recorded completion: job_id={job_info.job_id}, outcome={outcome.kind.value}")
        else:
            logger.info(
                f"Completion ignored (job finished or handle superseded): "
                f"job_id={job_info.job_id}, handle={job_info.handle}"
            )
