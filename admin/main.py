"""Admin API 서버 진입점"""

import logging
from pathlib import Path
from contextlib import asynccontextmanager

import yaml
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from common.logging import setup_logging_from_config
from database.registry import DatabaseRegistry
from admin.api.router.api import router, job_handler
from sweeper.model.sweeper import SweeperConfig

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).parent.parent / "config"


def load_config(config_path: Path = CONFIG_PATH) -> dict:
    """설정 파일 로드 (admin.yaml, database.yaml, sweeper.yaml, worker.yaml)"""
    config = {}
    for file_name in ("admin.yaml", "database.yaml", "sweeper.yaml", "worker.yaml"):
        with open(config_path / file_name, 'r', encoding='utf-8') as f:
            config.update(yaml.safe_load(f) or {})
    return config


def configure_handler(config: dict) -> None:
    """설정으로 잡 핸들러 구성"""
    admin_config = config.get('admin', {})
    generation_config = config.get('generation', {})
    db_name = admin_config.get('database', 'default')
    worker_db_name = config.get('worker', {}).get('database', db_name)

    sweeper_config = SweeperConfig(**{**config.get('sweeper', {}), 'database': db_name})
    job_handler.configure(
        database=db_name,
        scheduler_database=worker_db_name,
        handler_name=generation_config.get('handler_name', 'sample_generation'),
        timeout_seconds=generation_config.get('timeout_seconds', 600),
        sweeper_config=sweeper_config,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """앱 생명주기 관리"""
    config = app.state.config
    db_name = config.get('admin', {}).get('database', 'default')
    worker_db_name = config.get('worker', {}).get('database', db_name)

    # 지정된 DB만 초기화 (main.py에서 이미 초기화했으면 건너뜀)
    await DatabaseRegistry.init_from_config(config, [db_name, worker_db_name])
    logger.info("Database initialized")

    yield

    await DatabaseRegistry.close_all()
    logger.info("Database closed")


def create_app(config: dict | None = None) -> FastAPI:
    """FastAPI 앱 생성"""
    config = config if config is not None else load_config()
    admin_config = config.get('admin', {})
    configure_handler(config)

    app = FastAPI(
        title="Generation Job Admin API",
        description="생성 잡 제출/재시도/보정 Admin API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.config = config

    # CORS 설정
    cors_config = admin_config.get('cors', {})
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_config.get('origins', ['*']),
        allow_credentials=cors_config.get('allow_credentials', True),
        allow_methods=cors_config.get('allow_methods', ['*']),
        allow_headers=cors_config.get('allow_headers', ['*']),
    )

    app.include_router(router)
    return app


if __name__ == "__main__":
    import uvicorn

    config = load_config()
    setup_logging_from_config(config)
    admin_config = config.get('admin', {})

    uvicorn.run(
        create_app(config),
        host=admin_config.get('host', '0.0.0.0'),
        port=admin_config.get('port', 8080),
    )
