"""
WorkerSchedulerAdapter 테스트

테스트 항목:
1. enqueue: PENDING 실행 생성, UUID handle 반환
2. query_outcome: 실행 상태 -> Outcome 변환
3. 잘못된/없는 handle 처리
4. 대기 중 실행 취소

실행: python -m pytest test/scheduler_test.py -v
"""

import json
import uuid

import pytest
import pytest_asyncio

from scheduler.adapter.worker import WorkerSchedulerAdapter
from scheduler.exception import MalformedHandleError, SchedulerUnavailableError, TransientDispatchError
from scheduler.model.outcome import OutcomeKind


@pytest_asyncio.fixture
async def adapter(database):
    return WorkerSchedulerAdapter(database, "sample_generation", timeout_seconds=60)


async def set_execution(database, handle: str, **fields):
    assignments = ", ".join(f"{key} = ?" for key in fields)
    async with database.transaction() as ctx:
        await ctx.execute(
            f"UPDATE work_executions SET {assignments} WHERE handle = ?",
            (*fields.values(), handle),
        )


class TestEnqueue:
    """enqueue 테스트"""

    @pytest.mark.asyncio
    async def test_enqueue_creates_pending_execution(self, database, adapter):
        """PENDING 실행 레코드 생성"""
        handle = await adapter.enqueue("job-1", '{"goal": "endurance"}')

        uuid.UUID(handle)
        async with database.transaction(readonly=True) as ctx:
            row = await ctx.fetch_one("SELECT * FROM work_executions WHERE handle = ?", (handle,))

        assert row['status'] == "PENDING"
        assert row['job_id'] == "job-1"
        assert row['handler_name'] == "sample_generation"
        assert row['timeout_seconds'] == 60
        assert json.loads(row['params']) == {"job_id": "job-1", "payload": '{"goal": "endurance"}'}

    @pytest.mark.asyncio
    async def test_enqueue_returns_distinct_handles(self, adapter):
        """같은 잡을 다시 보내도 새 handle"""
        assert await adapter.enqueue("job-1", "{}") != await adapter.enqueue("job-1", "{}")

    @pytest.mark.asyncio
    async def test_enqueue_on_closed_database(self, database, adapter):
        """DB를 쓸 수 없으면 TransientDispatchError"""
        await database.close()

        with pytest.raises(TransientDispatchError) as exc_info:
            await adapter.enqueue("job-1", "{}")
        assert exc_info.value.job_id == "job-1"


class TestQueryOutcome:
    """query_outcome 테스트"""

    @pytest.mark.asyncio
    async def test_pending_and_running_are_running(self, database, adapter):
        """PENDING, RUNNING -> RUNNING"""
        handle = await adapter.enqueue("job-1", "{}")
        assert (await adapter.query_outcome(handle)).kind is OutcomeKind.RUNNING

        await set_execution(database, handle, status="RUNNING")
        assert (await adapter.query_outcome(handle)).kind is OutcomeKind.RUNNING

    @pytest.mark.asyncio
    async def test_success_carries_result(self, database, adapter):
        """SUCCESS -> SUCCEEDED(result)"""
        handle = await adapter.enqueue("job-1", "{}")
        await set_execution(database, handle, status="SUCCESS", result='{"plan": []}')

        outcome = await adapter.query_outcome(handle)
        assert outcome.kind is OutcomeKind.SUCCEEDED
        assert outcome.result == '{"plan": []}'

    @pytest.mark.asyncio
    async def test_failed_carries_reason(self, database, adapter):
        """FAILED -> FAILED(reason)"""
        handle = await adapter.enqueue("job-1", "{}")
        await set_execution(database, handle, status="FAILED", error_message="model overloaded")

        outcome = await adapter.query_outcome(handle)
        assert outcome.kind is OutcomeKind.FAILED
        assert outcome.reason == "model overloaded"

    @pytest.mark.asyncio
    async def test_unknown_handle(self, adapter):
        """없는 handle -> UNKNOWN"""
        outcome = await adapter.query_outcome(str(uuid.uuid4()))
        assert outcome.kind is OutcomeKind.UNKNOWN

    @pytest.mark.asyncio
    async def test_malformed_handle(self, adapter):
        """UUID가 아닌 handle"""
        with pytest.raises(MalformedHandleError):
            await adapter.query_outcome("not-a-handle")

    @pytest.mark.asyncio
    async def test_unavailable_database(self, database, adapter):
        """DB를 쓸 수 없으면 SchedulerUnavailableError"""
        handle = await adapter.enqueue("job-1", "{}")
        await database.close()

        with pytest.raises(SchedulerUnavailableError):
            await adapter.query_outcome(handle)


class TestCancel:
    """취소 테스트"""

    @pytest.mark.asyncio
    async def test_cancel_pending_execution(self, adapter):
        """대기 중 실행은 취소 후 CANCELLED"""
        handle = await adapter.enqueue("job-1", "{}")

        assert await adapter.cancel(handle) is True
        assert (await adapter.query_outcome(handle)).kind is OutcomeKind.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_running_execution(self, database, adapter):
        """실행 중이면 취소 불가"""
        handle = await adapter.enqueue("job-1", "{}")
        await set_execution(database, handle, status="RUNNING")

        assert await adapter.cancel(handle) is False
        assert (await adapter.query_outcome(handle)).kind is OutcomeKind.RUNNING


class TestExceptions:
    """스케줄러 예외 테스트"""

    def test_dispatch_error_default_message(self):
        error = TransientDispatchError("job-1")

        assert error.job_id == "job-1"
        assert error.message == "Failed to dispatch job: job-1"
        assert str(error) == error.message

    def test_dispatch_error_custom_message(self):
        error = TransientDispatchError("job-1", "broker down")

        assert str(error) == "broker down"
