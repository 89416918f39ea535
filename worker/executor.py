"""
잡 실행기 모듈

개별 work_executions 레코드의 실행을 담당합니다.
실행이 종료 상태(SUCCESS/FAILED)가 되면 등록된 완료 리스너에 Outcome을 알립니다.
"""

import asyncio
import json
import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable

from common.clock import format_timestamp, utc_now
from database import BaseDatabase
from scheduler.model.outcome import Outcome
from worker.base import get_handler, HandlerNotFoundError
from worker.model import JobInfo
from worker.model.handler import HandlerParams, HandlerResult, WorkStatus

logger = logging.getLogger(__name__)

CompletionListener = Callable[[JobInfo, Outcome], Awaitable[None]]


class Executor:
    """잡 실행기"""

    def __init__(
        self,
        db: BaseDatabase,
        queries: Any,
        retry_backoff_seconds: float = 30.0,
        listeners: list[CompletionListener] | None = None,
    ):
        self._db = db
        self._queries = queries
        self._retry_backoff_seconds = retry_backoff_seconds
        self._listeners = list(listeners or [])

    def add_listener(self, listener: CompletionListener) -> None:
        """완료 리스너 등록"""
        self._listeners.append(listener)

    async def execute(self, job_info: JobInfo) -> bool:
        """
        잡 실행

        Args:
            job_info: 실행할 잡 정보

        Returns:
            bool: 성공(또는 건너뜀) 여부
        """
        execution_id = job_info.id
        logger.info(f"Starting execution: id={execution_id}, handle={job_info.handle}, handler={job_info.handler_name}")

        # 1. RUNNING으로 상태 변경 (claim)
        if not await self._claim_execution(execution_id):
            logger.warning(f"Failed to claim execution: id={execution_id}")
            return False
        attempt = job_info.attempt_count + 1

        # 2. 핸들러 조회
        try:
            handler = get_handler(job_info.handler_name)
        except HandlerNotFoundError as e:
            logger.error(f"Handler not found: {job_info.handler_name}")
            await self._fail_execution(job_info, str(e))
            return False

        # 3. params 파싱
        try:
            params_dict = json.loads(job_info.params or '{}')
            params = HandlerParams(**{**params_dict, "attempt": attempt})
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            logger.error(f"Failed to parse params: id={execution_id}, error={e}")
            await self._fail_execution(job_info, f"Invalid params: {e}")
            return False

        # 4. 핸들러 실행 (타임아웃 적용)
        try:
            result = await asyncio.wait_for(handler.execute(params), timeout=job_info.timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(f"Execution timed out: id={execution_id}, timeout={job_info.timeout_seconds}s")
            await self._fail_execution(job_info, f"Execution timed out after {job_info.timeout_seconds}s")
            return False
        except Exception as e:
            logger.error(f"Execution failed: id={execution_id}, error={e}", exc_info=True)
            await self._fail_execution(job_info, str(e) or type(e).__name__)
            return False

        return await self._apply_result(job_info, attempt, result or HandlerResult())

    async def _apply_result(self, job_info: JobInfo, attempt: int, result: HandlerResult) -> bool:
        """HandlerResult.status에 따라 실행 레코드 갱신"""
        if result.is_success:
            result_str = json.dumps(result.data, ensure_ascii=False, default=str) if result.data is not None else None
            await self._complete_execution(job_info, result_str)
            logger.info(f"Execution completed: id={job_info.id}, status={result.status.value}")
            return True

        if result.status is WorkStatus.RETRY:
            delay = self._retry_backoff_seconds * (2 ** (attempt - 1))
            await self._reschedule_execution(job_info, result.error, delay)
            logger.info(f"Scheduling retry: id={job_info.id}, attempt={attempt}, delay={delay:.0f}s")
            return False

        await self._fail_execution(job_info, result.error or "Handler reported failure")
        return False

    async def _claim_execution(self, execution_id: int) -> bool:
        """PENDING -> RUNNING"""
        async with self._db.transaction() as ctx:
            # aiosql의 ! 연산자는 affected rows (int)를 직접 반환
            affected_rows = await self._queries.claim_execution(
                ctx.connection, execution_id=execution_id, now=format_timestamp()
            )
        return affected_rows > 0

    async def _complete_execution(self, job_info: JobInfo, result: str | None) -> None:
        """실행 완료 (SUCCESS)"""
        async with self._db.transaction() as ctx:
            await self._queries.complete_execution(
                ctx.connection, execution_id=job_info.id, result=result, now=format_timestamp()
            )
        await self._notify(job_info, Outcome.succeeded(result))

    async def _fail_execution(self, job_info: JobInfo, error_message: str) -> None:
        """실행 실패 (FAILED)"""
        async with self._db.transaction() as ctx:
            await self._queries.fail_execution(
                ctx.connection, execution_id=job_info.id, error_message=error_message, now=format_timestamp()
            )
        await self._notify(job_info, Outcome.failed(error_message))

    async def _reschedule_execution(self, job_info: JobInfo, error_message: str | None, delay_seconds: float) -> None:
        """재시도 대기 (RUNNING -> PENDING, next_run_at 지연)"""
        now = utc_now()
        async with self._db.transaction() as ctx:
            await self._queries.reschedule_execution(
                ctx.connection,
                execution_id=job_info.id,
                error_message=error_message,
                next_run_at=format_timestamp(now + timedelta(seconds=delay_seconds)),
                now=format_timestamp(now),
            )

    async def _notify(self, job_info: JobInfo, outcome: Outcome) -> None:
        """완료 리스너 호출 (리스너 오류는 실행 결과에 영향 없음)"""
        for listener in self._listeners:
            try:
                await listener(job_info, outcome)
            except Exception as e:
                logger.error(f"Completion listener failed: id={job_info.id}, job_id={job_info.job_id}, error={e}", exc_info=True)
