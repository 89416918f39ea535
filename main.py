"""
통합 진입점

Worker, Sweeper, Admin API를 한 번에 실행합니다.

사용법:
    python main.py                 # 전체 실행
    python main.py worker          # Worker만
    python main.py sweeper         # Sweeper만
    python main.py admin           # Admin API만
    python main.py worker sweeper  # 복수 선택
"""

import sys
import os

# Windows 인코딩 설정 (cp949 -> UTF-8)
if sys.platform == "win32":
    os.environ["PYTHONUTF8"] = "1"

import asyncio
import signal
import logging
from pathlib import Path

import yaml

from common.logging import setup_logging_from_config
from database.registry import DatabaseRegistry, get_db

logger = logging.getLogger(__name__)

CONFIG_FILES = ("database.yaml", "worker.yaml", "sweeper.yaml", "admin.yaml")


async def run_worker(config: dict, stop_event: asyncio.Event):
    """Worker 실행 (완료 시 잡 상태 반영)"""
    from generation.completion import CompletionRecorder
    from generation.repository.sqlite import SQLiteJobRepository
    from worker.main import WorkerPool, WorkerConfig, load_handlers

    load_handlers()
    worker_config = WorkerConfig(**config.get("worker", {}))
    job_db_name = config.get("admin", {}).get("database", "default")
    recorder = CompletionRecorder(SQLiteJobRepository(get_db(job_db_name)))
    worker_pool = WorkerPool(worker_config, listeners=[recorder])

    async def wait_stop():
        await stop_event.wait()
        await worker_pool.stop()

    asyncio.create_task(wait_stop())
    await worker_pool.start()


async def run_sweeper(config: dict, stop_event: asyncio.Event):
    """Sweeper 실행"""
    from generation.repository.sqlite import SQLiteJobRepository
    from scheduler.adapter.worker import WorkerSchedulerAdapter
    from sweeper.main import ReconciliationSweeper
    from sweeper.model.sweeper import SweeperConfig

    sweeper_config = SweeperConfig(**config.get("sweeper", {}))
    generation_config = config.get("generation", {})
    db = get_db(sweeper_config.database)
    scheduler = WorkerSchedulerAdapter(
        get_db(config.get("worker", {}).get("database", "default")),
        generation_config.get("handler_name", "sample_generation"),
        timeout_seconds=generation_config.get("timeout_seconds", 600),
    )
    sweeper = ReconciliationSweeper(SQLiteJobRepository(db), scheduler, sweeper_config)

    async def wait_stop():
        await stop_event.wait()
        await sweeper.stop()

    asyncio.create_task(wait_stop())
    await sweeper.start()


async def run_admin(config: dict, stop_event: asyncio.Event):
    """Admin API 실행"""
    import uvicorn
    from admin.main import create_app

    admin_config = config.get("admin", {})
    uv_config = uvicorn.Config(
        create_app(config),
        host=admin_config.get("host", "0.0.0.0"),
        port=admin_config.get("port", 8080),
        log_level="info",
        # DB 생명주기는 main()이 관리
        lifespan="off",
    )
    server = uvicorn.Server(uv_config)

    async def wait_stop():
        await stop_event.wait()
        server.should_exit = True

    asyncio.create_task(wait_stop())
    await server.serve()


def load_config() -> dict:
    """config/*.yaml 병합 로드"""
    config_path = Path(__file__).parent / "config"
    config = {}
    for file_name in CONFIG_FILES:
        with open(config_path / file_name, encoding="utf-8") as f:
            config.update(yaml.safe_load(f) or {})
    return config


async def main(modules: list[str]):
    """메인 함수"""
    config = load_config()
    setup_logging_from_config(config)

    # 필요한 DB 목록 수집 (잡 DB는 admin.database)
    db_names = {config.get("admin", {}).get("database", "default")}
    if "worker" in modules:
        db_names.add(config.get("worker", {}).get("database", "default"))
    if "sweeper" in modules:
        db_names.add(config.get("sweeper", {}).get("database", "default"))
        db_names.add(config.get("worker", {}).get("database", "default"))

    # DB 초기화
    await DatabaseRegistry.init_from_config(config, list(db_names))

    # 종료 이벤트
    stop_event = asyncio.Event()

    # 시그널 핸들러
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_event.set()

    # Windows는 add_signal_handler를 지원하지 않음
    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler)

    runners = {"worker": run_worker, "sweeper": run_sweeper, "admin": run_admin}
    tasks = []
    for module in modules:
        tasks.append(asyncio.create_task(runners[module](config, stop_event)))
        logger.info(f"{module.capitalize()} started")

    try:
        await asyncio.gather(*tasks)
    except asyncio.CancelledError:
        logger.info("Tasks cancelled")
    finally:
        await DatabaseRegistry.close_all()
        logger.info("All modules stopped")


if __name__ == "__main__":
    # 인자 파싱
    args = sys.argv[1:]
    valid_modules = ("worker", "sweeper", "admin")

    if args:
        modules = [m for m in valid_modules if m in args]
        if not modules:
            print("Usage: python main.py [worker] [sweeper] [admin]")
            sys.exit(1)
    else:
        modules = list(valid_modules)

    print(f"Starting: {', '.join(modules)}")
    try:
        asyncio.run(main(modules))
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
