"""
WorkerPool: 잡 실행 워커풀 모듈

work_executions 테이블에서 실행 시점이 된 PENDING 실행을 폴링하여 실행합니다.
WorkerSchedulerAdapter가 넣은 실행을 처리하는 스케줄러의 실행 측입니다.

실행 방법:
    python main.py worker
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import aiosql

from common.clock import format_timestamp
from database import BaseDatabase, get_db
from worker.executor import CompletionListener, Executor
from worker.model import JobInfo

logger = logging.getLogger(__name__)

SQL_PATH = Path(__file__).parent / "sql" / "worker.sql"


@dataclass
class WorkerConfig:
    """워커풀 설정"""
    database: str = "default"  # work_executions가 있는 DB (database.yaml에 정의된 이름)
    pool_size: int = 5
    poll_interval_seconds: float = 5
    claim_batch_size: int = 10
    shutdown_timeout_seconds: int = 30
    retry_backoff_seconds: float = 30


class WorkerPool:
    """
    잡 실행 워커풀

    PENDING 상태의 실행을 폴링하여 워커에 할당하고 실행합니다.
    시작 시 이전 프로세스에서 RUNNING으로 남은 실행을 다시 대기열로 돌립니다.
    """

    def __init__(self, config: WorkerConfig, listeners: list[CompletionListener] | None = None):
        self._config = config
        self._listeners = list(listeners or [])
        self._running = False
        self._stop_event: asyncio.Event | None = None
        self._db: BaseDatabase | None = None
        self._queries: Any | None = None
        self._executor: Executor | None = None
        self._running_tasks: set[asyncio.Task] = set()
        self._semaphore: asyncio.Semaphore | None = None

    async def start(self) -> None:
        """워커풀 메인 루프 시작"""
        if self._running:
            logger.warning("WorkerPool is already running")
            return

        self._running = True
        self._stop_event = asyncio.Event()
        self._semaphore = asyncio.Semaphore(self._config.pool_size)

        self._db = get_db(self._config.database)
        self._queries = aiosql.from_path(str(SQL_PATH), "aiosqlite")
        self._executor = Executor(
            self._db,
            self._queries,
            retry_backoff_seconds=self._config.retry_backoff_seconds,
            listeners=self._listeners,
        )

        logger.info(
            f"WorkerPool started (pool_size={self._config.pool_size}, "
            f"poll_interval={self._config.poll_interval_seconds}s)"
        )

        try:
            await self._recover_interrupted()
            await self._main_loop()
        except asyncio.CancelledError:
            logger.info("WorkerPool cancelled")
        except Exception as e:
            logger.error(f"WorkerPool error: {e}", exc_info=True)
            raise
        finally:
            await self._wait_running_tasks()
            self._running = False
            logger.info("WorkerPool stopped")

    async def stop(self) -> None:
        """WorkerPool graceful shutdown"""
        if not self._running:
            return

        logger.info("Stopping WorkerPool...")
        self._running = False
        if self._stop_event:
            self._stop_event.set()

    async def _main_loop(self) -> None:
        """메인 폴링 루프"""
        while self._running:
            try:
                await self._poll_and_assign()
            except Exception as e:
                logger.error(f"Error in poll_and_assign: {e}", exc_info=True)

            # 다음 폴링까지 대기 (stop 시 즉시 종료)
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self._config.poll_interval_seconds
                )
                break
            except asyncio.TimeoutError:
                pass

    async def _recover_interrupted(self) -> None:
        """RUNNING으로 남은 실행 복구 (단일 워커 프로세스 기준)"""
        async with self._db.transaction() as ctx:
            recovered = await self._queries.recover_interrupted_executions(
                ctx.connection, now=format_timestamp()
            )
        if recovered:
            logger.warning(f"Re-queued {recovered} interrupted executions")

    async def _poll_and_assign(self) -> None:
        """PENDING 실행 조회 후 워커에 할당"""
        available_workers = self._config.pool_size - len(self._running_tasks)
        if available_workers <= 0:
            logger.debug("No available workers, skipping poll")
            return

        batch_size = min(available_workers, self._config.claim_batch_size)
        rows = await self._get_pending_executions(batch_size)

        if not rows:
            logger.debug("No pending executions found")
            return

        logger.debug(f"Found {len(rows)} pending executions")

        for row in rows:
            job_info = JobInfo(
                id=row["id"],
                handle=row["handle"],
                job_id=row["job_id"],
                handler_name=row["handler_name"],
                params=row["params"],
                attempt_count=row["attempt_count"],
                timeout_seconds=row["timeout_seconds"],
            )

            # 세마포어로 동시 실행 수 제한
            await self._semaphore.acquire()
            task = asyncio.create_task(self._execute_job(job_info))
            self._running_tasks.add(task)
            task.add_done_callback(self._on_task_done)

    async def _execute_job(self, job_info: JobInfo) -> None:
        """실행 (워커 태스크)"""
        try:
            await self._executor.execute(job_info)
        except Exception as e:
            logger.error(f"Unexpected error executing {job_info.id}: {e}", exc_info=True)
        finally:
            self._semaphore.release()

    def _on_task_done(self, task: asyncio.Task) -> None:
        """태스크 완료 콜백"""
        self._running_tasks.discard(task)
        if not task.cancelled() and task.exception():
            logger.error(f"Task exception: {task.exception()}")

    async def _get_pending_executions(self, limit: int) -> list[dict]:
        async with self._db.transaction(readonly=True) as ctx:
            rows = await self._queries.get_pending_executions(
                ctx.connection, now=format_timestamp(), limit=limit
            )
        return [dict(row) for row in rows] if rows else []

    async def _wait_running_tasks(self) -> None:
        """실행 중인 태스크 완료 대기 (graceful shutdown)"""
        if not self._running_tasks:
            return

        logger.info(f"Waiting for {len(self._running_tasks)} running tasks...")

        try:
            await asyncio.wait_for(
                asyncio.gather(*self._running_tasks, return_exceptions=True),
                timeout=self._config.shutdown_timeout_seconds
            )
            logger.info("All tasks completed")
        except asyncio.TimeoutError:
            logger.warning(
                f"Shutdown timeout ({self._config.shutdown_timeout_seconds}s), "
                f"{len(self._running_tasks)} tasks still running"
            )
            for task in self._running_tasks:
                task.cancel()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def running_task_count(self) -> int:
        return len(self._running_tasks)


def load_handlers() -> None:
    """핸들러 모듈 로드 (데코레이터 등록을 위해, 하위 폴더 재귀 탐색)"""
    import importlib
    import pkgutil
    from worker import job as job_pkg

    def load_recursive(package, prefix: str):
        for _, module_name, is_pkg in pkgutil.iter_modules(package.__path__):
            full_name = f"{prefix}.{module_name}"
            module = importlib.import_module(full_name)
            logger.debug(f"Loaded handler module: {full_name}")
            if is_pkg:
                load_recursive(module, full_name)

    load_recursive(job_pkg, "worker.job")
