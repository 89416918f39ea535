"""
Worker 테스트

테스트 항목:
1. @handler 데코레이터 등록 테스트
2. BoundedRetryHandler 시도 횟수 상한
3. GenerationHandler payload/타임아웃 처리
4. Executor 성공/재시도/실패 기록 및 완료 리스너 호출
5. 완료 콜백의 handle 비교 (재시도 후 이전 실행 결과 무시)
6. WorkerPool 폴링 및 중단된 실행 복구

실행: python -m pytest test/worker_test.py -v
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import aiosql
import pytest
import pytest_asyncio

from common.clock import format_timestamp
from generation.completion import CompletionRecorder
from generation.model.job import JobStatus
from generation.service import JobSubmissionService
from scheduler.adapter.worker import WorkerSchedulerAdapter
from scheduler.model.outcome import OutcomeKind
from worker.base import (
    BoundedRetryHandler,
    handler,
    get_handler,
    get_registered_handlers,
    HandlerNotFoundError,
)
from worker.exception import RecoverableWorkError
from worker.executor import Executor
from worker.job.generation import GenerationHandler
from worker.job import sample  # noqa: F401
from worker.main import WorkerPool, WorkerConfig
from worker.model import JobInfo
from worker.model.handler import HandlerParams, HandlerResult, WorkStatus

logger = logging.getLogger(__name__)

WORKER_SQL = Path(__file__).parent.parent / "worker" / "sql" / "worker.sql"


# ============================================================
# Test handlers
# ============================================================

@handler("test_flaky")
class FlakyHandler(BoundedRetryHandler):
    """항상 회복 가능한 오류"""

    async def do_work(self, params: HandlerParams) -> HandlerResult:
        raise RecoverableWorkError("model overloaded")


@handler("test_skipped")
class SkippedHandler(BoundedRetryHandler):
    """선행 조건 미충족"""

    async def do_work(self, params: HandlerParams) -> HandlerResult:
        return HandlerResult(status=WorkStatus.SKIPPED, data={"skipped": True})


class PatientHandler(FlakyHandler):
    max_attempts = 5


class BrokenHandler(BoundedRetryHandler):
    async def do_work(self, params: HandlerParams) -> HandlerResult:
        raise ValueError("bad input")


class EchoGenerator(GenerationHandler):
    async def generate(self, request: Any) -> Any:
        return {"echo": request}


class EmptyGenerator(GenerationHandler):
    async def generate(self, request: Any) -> Any:
        return None


class SlowGenerator(GenerationHandler):
    timeout_seconds = 0.01

    async def generate(self, request: Any) -> Any:
        await asyncio.sleep(1)
        return {}


# ============================================================
# Fixtures
# ============================================================

@pytest_asyncio.fixture
async def worker_queries():
    """Worker SQL 쿼리 로드"""
    return aiosql.from_path(str(WORKER_SQL), "aiosqlite")


@pytest_asyncio.fixture
async def outcomes():
    """완료 리스너가 받은 (JobInfo, Outcome) 목록"""
    return []


@pytest_asyncio.fixture
async def executor(database, worker_queries, outcomes):
    async def listener(job_info, outcome):
        outcomes.append((job_info, outcome))

    return Executor(database, worker_queries, retry_backoff_seconds=30, listeners=[listener])


def adapter_for(database, handler_name: str) -> WorkerSchedulerAdapter:
    return WorkerSchedulerAdapter(database, handler_name, timeout_seconds=10)


async def load_job_info(database, handle: str) -> JobInfo:
    async with database.transaction(readonly=True) as ctx:
        row = await ctx.fetch_one(
            "SELECT id, handle, job_id, handler_name, params, attempt_count, timeout_seconds "
            "FROM work_executions WHERE handle = ?",
            (handle,),
        )
    return JobInfo(**dict(row))


async def load_execution(database, handle: str) -> dict:
    async with database.transaction(readonly=True) as ctx:
        row = await ctx.fetch_one("SELECT * FROM work_executions WHERE handle = ?", (handle,))
    return dict(row)


# ============================================================
# Handler Tests
# ============================================================

class TestHandlerRegistry:
    """@handler 데코레이터 및 get_handler() 테스트"""

    def test_handler_decorator_registers_class(self):
        """데코레이터로 등록된 클래스 조회"""
        registered = get_registered_handlers()
        assert registered["test_flaky"] is FlakyHandler
        assert "sample_generation" in registered

    def test_get_handler_returns_instance(self):
        assert isinstance(get_handler("test_skipped"), SkippedHandler)

    def test_get_handler_raises_on_unknown(self):
        with pytest.raises(HandlerNotFoundError):
            get_handler("no_such_handler")


class TestBoundedRetry:
    """시도 횟수 상한 테스트"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("attempt", [1, 2])
    async def test_retry_below_ceiling(self, attempt):
        """1, 2번째 시도 실패는 재시도 요청"""
        result = await FlakyHandler().execute(HandlerParams(attempt=attempt))

        assert result.status is WorkStatus.RETRY
        assert result.error == "model overloaded"

    @pytest.mark.asyncio
    async def test_failure_at_ceiling(self):
        """3번째 시도 실패는 최종 실패"""
        result = await FlakyHandler().execute(HandlerParams(attempt=3))

        assert result.status is WorkStatus.FAILURE
        assert result.error == "model overloaded (failed after 3 attempts)"

    @pytest.mark.asyncio
    async def test_ceiling_per_handler_class(self):
        """max_attempts는 클래스별로 변경 가능"""
        assert (await PatientHandler().execute(HandlerParams(attempt=4))).status is WorkStatus.RETRY
        assert (await PatientHandler().execute(HandlerParams(attempt=5))).status is WorkStatus.FAILURE

    @pytest.mark.asyncio
    async def test_skipped_is_success(self):
        result = await SkippedHandler().execute(HandlerParams(attempt=1))

        assert result.is_success
        assert result.status is WorkStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_unrecoverable_error_propagates(self):
        with pytest.raises(ValueError):
            await BrokenHandler().execute(HandlerParams(attempt=1))


class TestGenerationHandler:
    """GenerationHandler 테스트"""

    @pytest.mark.asyncio
    async def test_payload_decoded(self):
        result = await EchoGenerator().execute(HandlerParams(job_id="job-1", payload='{"days": 3}'))

        assert result.status is WorkStatus.SUCCESS
        assert result.data == {"echo": {"days": 3}}

    @pytest.mark.asyncio
    async def test_invalid_payload(self):
        result = await EchoGenerator().execute(HandlerParams(payload="{not json"))

        assert result.status is WorkStatus.FAILURE
        assert result.error.startswith("Invalid payload")

    @pytest.mark.asyncio
    async def test_empty_result(self):
        result = await EmptyGenerator().execute(HandlerParams(payload="{}"))

        assert result.status is WorkStatus.FAILURE

    @pytest.mark.asyncio
    async def test_generation_timeout_retries(self):
        """생성 타임아웃은 재시도 대상"""
        result = await SlowGenerator().execute(HandlerParams(payload="{}", attempt=1))

        assert result.status is WorkStatus.RETRY
        assert "timed out" in result.error

    @pytest.mark.asyncio
    async def test_generation_timeout_keeps_cause(self):
        """타임아웃 오류의 원인(TimeoutError) 유지"""
        with pytest.raises(RecoverableWorkError) as exc_info:
            await SlowGenerator().do_work(HandlerParams(payload="{}"))

        assert isinstance(exc_info.value.__cause__, asyncio.TimeoutError)


# ============================================================
# Executor Tests
# ============================================================

class TestExecutor:
    """Executor 테스트"""

    @pytest.mark.asyncio
    async def test_executor_success(self, database, executor, outcomes):
        """성공 시 SUCCESS 기록 + 리스너 호출"""
        handle = await adapter_for(database, "sample_generation").enqueue("job-1", '{"goal": "strength"}')

        assert await executor.execute(await load_job_info(database, handle)) is True

        row = await load_execution(database, handle)
        assert row["status"] == "SUCCESS"
        assert row["attempt_count"] == 1
        assert json.loads(row["result"])["request"] == {"goal": "strength"}

        job_info, outcome = outcomes[0]
        assert job_info.handle == handle
        assert outcome.kind is OutcomeKind.SUCCEEDED
        assert outcome.result == row["result"]

    @pytest.mark.asyncio
    async def test_executor_retry_reschedules(self, database, executor, outcomes):
        """재시도 요청 시 PENDING + 다음 실행 시각 지연"""
        handle = await adapter_for(database, "test_flaky").enqueue("job-1", "{}")

        assert await executor.execute(await load_job_info(database, handle)) is False

        row = await load_execution(database, handle)
        assert row["status"] == "PENDING"
        assert row["attempt_count"] == 1
        assert row["error_message"] == "model overloaded"
        assert row["next_run_at"] > format_timestamp()
        assert outcomes == []

    @pytest.mark.asyncio
    async def test_executor_fails_on_third_attempt(self, database, executor, outcomes):
        """3번째 시도 실패 시 FAILED + 리스너 호출"""
        handle = await adapter_for(database, "test_flaky").enqueue("job-1", "{}")
        async with database.transaction() as ctx:
            await ctx.execute("UPDATE work_executions SET attempt_count = 2 WHERE handle = ?", (handle,))

        await executor.execute(await load_job_info(database, handle))

        row = await load_execution(database, handle)
        assert row["status"] == "FAILED"
        assert row["attempt_count"] == 3
        assert outcomes[0][1].kind is OutcomeKind.FAILED
        assert outcomes[0][1].reason == "model overloaded (failed after 3 attempts)"

    @pytest.mark.asyncio
    async def test_executor_skipped_is_success(self, database, executor):
        handle = await adapter_for(database, "test_skipped").enqueue("job-1", "{}")

        assert await executor.execute(await load_job_info(database, handle)) is True
        assert (await load_execution(database, handle))["status"] == "SUCCESS"

    @pytest.mark.asyncio
    async def test_executor_handler_not_found(self, database, executor, outcomes):
        """등록되지 않은 핸들러는 FAILED"""
        handle = await adapter_for(database, "no_such_handler").enqueue("job-1", "{}")

        assert await executor.execute(await load_job_info(database, handle)) is False

        row = await load_execution(database, handle)
        assert row["status"] == "FAILED"
        assert outcomes[0][1].kind is OutcomeKind.FAILED

    @pytest.mark.asyncio
    async def test_executor_claims_once(self, database, executor):
        """이미 실행된 레코드는 다시 실행하지 않음"""
        handle = await adapter_for(database, "sample_generation").enqueue("job-1", "{}")
        job_info = await load_job_info(database, handle)

        assert await executor.execute(job_info) is True
        assert await executor.execute(job_info) is False

    @pytest.mark.asyncio
    async def test_listener_error_ignored(self, database, worker_queries):
        """리스너 오류는 실행 결과에 영향 없음"""
        async def broken_listener(job_info, outcome):
            raise RuntimeError("listener down")

        executor = Executor(database, worker_queries, listeners=[broken_listener])
        handle = await adapter_for(database, "sample_generation").enqueue("job-1", "{}")

        assert await executor.execute(await load_job_info(database, handle)) is True
        assert (await load_execution(database, handle))["status"] == "SUCCESS"


# ============================================================
# Completion callback Tests
# ============================================================

class TestCompletionRecorder:
    """완료 콜백 -> 잡 상태 반영 테스트"""

    @pytest.mark.asyncio
    async def test_success_recorded_on_job(self, database, repository, worker_queries):
        """실행 성공 시 잡 SUCCEEDED"""
        adapter = adapter_for(database, "sample_generation")
        service = JobSubmissionService(repository, adapter)
        executor = Executor(database, worker_queries, listeners=[CompletionRecorder(repository)])

        job_id = await service.submit({"goal": "strength"})
        job = await repository.get_by_id(job_id)
        await executor.execute(await load_job_info(database, job.scheduler_handle))

        job = await repository.get_by_id(job_id)
        assert job.status is JobStatus.SUCCEEDED
        assert json.loads(job.result)["request"] == {"goal": "strength"}

    @pytest.mark.asyncio
    async def test_failure_recorded_on_job(self, database, repository, worker_queries):
        """실행 실패 시 잡 FAILED + 사유"""
        adapter = adapter_for(database, "no_such_handler")
        service = JobSubmissionService(repository, adapter)
        executor = Executor(database, worker_queries, listeners=[CompletionRecorder(repository)])

        job_id = await service.submit({"goal": "strength"})
        job = await repository.get_by_id(job_id)
        await executor.execute(await load_job_info(database, job.scheduler_handle))

        job = await repository.get_by_id(job_id)
        assert job.status is JobStatus.FAILED
        assert "no_such_handler" in job.error_message

    @pytest.mark.asyncio
    async def test_superseded_handle_ignored(self, database, repository, worker_queries):
        """재시도 후 이전 실행의 완료는 잡을 바꾸지 않음"""
        adapter = adapter_for(database, "sample_generation")
        service = JobSubmissionService(repository, adapter)
        executor = Executor(database, worker_queries, listeners=[CompletionRecorder(repository)])

        job_id = await service.submit({"goal": "strength"})
        old_handle = (await repository.get_by_id(job_id)).scheduler_handle
        await service.retry(job_id)
        new_handle = (await repository.get_by_id(job_id)).scheduler_handle

        await executor.execute(await load_job_info(database, old_handle))

        job = await repository.get_by_id(job_id)
        assert job.status is JobStatus.PROCESSING
        assert job.scheduler_handle == new_handle


# ============================================================
# WorkerPool Tests
# ============================================================

class TestWorkerPool:
    """WorkerPool 테스트"""

    @staticmethod
    def make_config() -> WorkerConfig:
        return WorkerConfig(
            pool_size=2,
            poll_interval_seconds=0.1,
            claim_batch_size=5,
            shutdown_timeout_seconds=5,
        )

    async def run_until(self, worker_pool: WorkerPool, condition, timeout: float = 5.0) -> None:
        task = asyncio.create_task(worker_pool.start())
        try:
            for _ in range(int(timeout / 0.05)):
                if await condition():
                    break
                await asyncio.sleep(0.05)
        finally:
            await worker_pool.stop()
            await asyncio.wait_for(task, timeout=timeout)

    @pytest.mark.asyncio
    async def test_worker_pool_processes_submitted_job(self, database, repository):
        """제출한 잡을 WorkerPool이 실행하고 결과 반영"""
        service = JobSubmissionService(repository, adapter_for(database, "sample_generation"))
        job_id = await service.submit({"goal": "strength"})
        worker_pool = WorkerPool(self.make_config(), listeners=[CompletionRecorder(repository)])

        async def finished():
            return (await repository.get_by_id(job_id)).status is JobStatus.SUCCEEDED

        await self.run_until(worker_pool, finished)

        assert await finished()
        assert not worker_pool.is_running
        assert worker_pool.running_task_count == 0

    @pytest.mark.asyncio
    async def test_worker_pool_recovers_interrupted(self, database):
        """재시작 시 RUNNING으로 남은 실행을 다시 실행"""
        handle = await adapter_for(database, "sample_generation").enqueue("job-1", "{}")
        async with database.transaction() as ctx:
            await ctx.execute(
                "UPDATE work_executions SET status = 'RUNNING', attempt_count = 1 WHERE handle = ?",
                (handle,),
            )
        worker_pool = WorkerPool(self.make_config())

        async def finished():
            return (await load_execution(database, handle))["status"] == "SUCCESS"

        await self.run_until(worker_pool, finished)

        row = await load_execution(database, handle)
        assert row["status"] == "SUCCESS"
        assert row["attempt_count"] == 2

    @pytest.mark.asyncio
    async def test_cancelled_execution_not_run(self, database):
        """취소된 실행은 폴링 대상 아님"""
        adapter = adapter_for(database, "sample_generation")
        cancelled = await adapter.enqueue("job-1", "{}")
        active = await adapter.enqueue("job-2", "{}")
        await adapter.cancel(cancelled)
        worker_pool = WorkerPool(self.make_config())

        async def finished():
            return (await load_execution(database, active))["status"] == "SUCCESS"

        await self.run_until(worker_pool, finished)

        assert (await adapter.query_outcome(cancelled)).kind is OutcomeKind.CANCELLED
