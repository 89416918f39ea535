"""
공통 테스트 픽스처

DB는 tmp_path 아래 SQLite 파일을 사용하고,
스케줄러는 결과를 미리 지정할 수 있는 FakeSchedulerAdapter로 대체합니다.
"""

import logging

import pytest_asyncio

from database import get_db
from database.registry import DatabaseRegistry
from generation.repository.sqlite import SQLiteJobRepository
from generation.service import JobSubmissionService
from scheduler.adapter.base import BaseSchedulerAdapter
from scheduler.exception import SchedulerUnavailableError, TransientDispatchError
from scheduler.model.outcome import Outcome
from sweeper.main import ReconciliationSweeper
from sweeper.model.sweeper import SweeperConfig

logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


class FakeSchedulerAdapter(BaseSchedulerAdapter):
    """
    테스트용 스케줄러

    handle은 H1, H2, ... 순서로 발급하고, query_outcome은 outcomes에 지정한 값을 돌려줍니다.
    지정하지 않은 handle은 RUNNING입니다.
    """

    def __init__(self):
        self.outcomes: dict[str, Outcome] = {}
        self.enqueued: list[tuple[str, str, str]] = []
        self.queried: list[str] = []
        self.fail_enqueue = False
        self.unreachable = False
        self._counter = 0

    async def enqueue(self, job_id: str, payload: str) -> str:
        if self.fail_enqueue:
            raise TransientDispatchError(job_id)
        self._counter += 1
        handle = f"H{self._counter}"
        self.enqueued.append((job_id, payload, handle))
        return handle

    async def query_outcome(self, handle: str) -> Outcome:
        self.queried.append(handle)
        if self.unreachable:
            raise SchedulerUnavailableError(f"scheduler unreachable: {handle}")
        return self.outcomes.get(handle, Outcome.running())


def sqlite_config(path) -> dict:
    """tmp_path용 database.yaml 내용"""
    return {
        'databases': {
            'default': {
                'type': 'sqlite3',
                'path': str(path),
                'pool': {'pool_size': 5, 'pool_timeout': 1.0},
            }
        }
    }


@pytest_asyncio.fixture
async def database(tmp_path):
    """테스트용 Database 인스턴스 (DatabaseRegistry 사용)"""
    DatabaseRegistry.clear()
    await DatabaseRegistry.init_from_config(sqlite_config(tmp_path / "jobs.db"))
    yield get_db('default')
    await DatabaseRegistry.close_all()


@pytest_asyncio.fixture
async def repository(database):
    return SQLiteJobRepository(database)


@pytest_asyncio.fixture
async def scheduler():
    return FakeSchedulerAdapter()


@pytest_asyncio.fixture
async def service(repository, scheduler):
    return JobSubmissionService(repository, scheduler)


@pytest_asyncio.fixture
async def sweeper(repository, scheduler):
    return ReconciliationSweeper(repository, scheduler, SweeperConfig(run_on_start=False))
