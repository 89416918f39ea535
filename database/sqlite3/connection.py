"""
SQLite3 비동기 커넥션풀 모듈

aiosqlite 연결을 고정 크기 풀로 관리하고, 트랜잭션 단위로 빌려줍니다.
스키마(generation_jobs, work_executions)는 초기화 시 sql/init.sql로 생성합니다.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosql
import aiosqlite

from database.base import BaseDatabase
from database.exception import (
    ConnectionPoolExhaustedError,
    DatabaseError,
    QueryExecutionError,
    ReadOnlyTransactionError,
    TransactionError,
)

logger = logging.getLogger(__name__)

INIT_SQL_PATH = Path(__file__).parent / 'sql' / 'init.sql'

_WRITE_KEYWORDS = ('INSERT', 'UPDATE', 'DELETE', 'REPLACE', 'CREATE', 'DROP', 'ALTER')


@dataclass
class PoolConfig:
    """커넥션풀 설정"""
    pool_size: int = 5
    pool_timeout: float = 30.0
    max_idle_time: float = 300.0


@dataclass
class SqliteOptions:
    """SQLite 연결 옵션 (PRAGMA)"""
    busy_timeout: int = 5000
    journal_mode: str = 'WAL'
    synchronous: str = 'NORMAL'
    cache_size: int = -2000
    foreign_keys: bool = True


@dataclass
class PooledConnection:
    """풀에서 관리되는 연결"""
    connection: aiosqlite.Connection
    last_used_at: datetime = field(default_factory=datetime.now)
    in_use: bool = False


class TransactionContext:
    """트랜잭션 동안 사용하는 연결 래퍼"""

    def __init__(self, connection: aiosqlite.Connection, readonly: bool = False):
        self._connection = connection
        self._readonly = readonly

    @property
    def connection(self) -> aiosqlite.Connection:
        """aiosql 쿼리에 넘길 원본 연결"""
        return self._connection

    @property
    def readonly(self) -> bool:
        return self._readonly

    async def execute(self, sql: str, parameters: Any = None) -> aiosqlite.Cursor:
        """SQL 실행"""
        if self._readonly and sql.strip().upper().startswith(_WRITE_KEYWORDS):
            raise ReadOnlyTransactionError("Cannot execute write query in readonly transaction")

        logger.debug(f"[SQL] {' '.join(sql.split())} | params: {parameters}")
        try:
            return await self._connection.execute(sql, parameters or ())
        except aiosqlite.Error as e:
            raise QueryExecutionError('raw', str(e)) from e

    async def fetch_one(self, sql: str, parameters: Any = None) -> aiosqlite.Row | None:
        """단일 행 조회"""
        cursor = await self.execute(sql, parameters)
        return await cursor.fetchone()

    async def fetch_all(self, sql: str, parameters: Any = None) -> list[aiosqlite.Row]:
        """모든 행 조회"""
        cursor = await self.execute(sql, parameters)
        return list(await cursor.fetchall())


class AsyncConnectionPool:
    """고정 크기 aiosqlite 커넥션풀"""

    def __init__(
        self,
        db_path: str,
        pool_config: PoolConfig | None = None,
        sqlite_options: SqliteOptions | None = None
    ):
        self._db_path = Path(db_path)
        self._pool_config = pool_config or PoolConfig()
        self._sqlite_options = sqlite_options or SqliteOptions()
        self._pool: list[PooledConnection] = []
        self._lock = asyncio.Lock()
        self._semaphore: asyncio.Semaphore | None = None
        self._closed = False

    async def initialize(self) -> None:
        """연결 생성 및 PRAGMA 적용"""
        if self._semaphore is not None:
            logger.warning("Connection pool already initialized")
            return

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._semaphore = asyncio.Semaphore(self._pool_config.pool_size)
        for _ in range(self._pool_config.pool_size):
            self._pool.append(PooledConnection(connection=await self._connect()))

        logger.info(f"Connection pool initialized: {self._db_path} (size={self._pool_config.pool_size})")

    async def _connect(self) -> aiosqlite.Connection:
        opts = self._sqlite_options
        # 트랜잭션은 ManagedTransaction에서 명시적으로 시작 (autocommit 연결)
        conn = await aiosqlite.connect(
            self._db_path, timeout=opts.busy_timeout / 1000.0, isolation_level=None
        )
        conn.row_factory = aiosqlite.Row
        await conn.execute(f"PRAGMA busy_timeout={opts.busy_timeout}")
        await conn.execute(f"PRAGMA journal_mode={opts.journal_mode}")
        await conn.execute(f"PRAGMA synchronous={opts.synchronous}")
        await conn.execute(f"PRAGMA cache_size={opts.cache_size}")
        await conn.execute(f"PRAGMA foreign_keys={'ON' if opts.foreign_keys else 'OFF'}")
        return conn

    async def acquire(self) -> PooledConnection:
        """풀에서 연결 획득 (유휴 시간이 긴 연결은 새로 연결)"""
        if self._semaphore is None or self._closed:
            raise DatabaseError("Connection pool is not available")

        timeout = self._pool_config.pool_timeout
        try:
            await asyncio.wait_for(self._semaphore.acquire(), timeout=timeout)
        except asyncio.TimeoutError:
            raise ConnectionPoolExhaustedError(f"Connection pool exhausted. Timeout after {timeout}s")

        async with self._lock:
            pooled = next((pc for pc in self._pool if not pc.in_use), None)
            if pooled is None:
                self._semaphore.release()
                raise ConnectionPoolExhaustedError("No available connection in pool")
            pooled.in_use = True

        idle = (datetime.now() - pooled.last_used_at).total_seconds()
        if idle > self._pool_config.max_idle_time:
            try:
                await pooled.connection.close()
                pooled.connection = await self._connect()
                logger.debug("Refreshed idle connection")
            except aiosqlite.Error:
                await self.release(pooled)
                raise
        return pooled

    async def release(self, pooled: PooledConnection) -> None:
        """연결 반환"""
        async with self._lock:
            pooled.in_use = False
            pooled.last_used_at = datetime.now()
        self._semaphore.release()

    async def close(self) -> None:
        """모든 연결 종료"""
        self._closed = True
        async with self._lock:
            for pooled in self._pool:
                try:
                    await pooled.connection.close()
                except Exception as e:
                    logger.error(f"Error closing connection: {e}")
            self._pool.clear()
        logger.info("Connection pool closed")

    @property
    def size(self) -> int:
        return len(self._pool)

    @property
    def available(self) -> int:
        return sum(1 for pc in self._pool if not pc.in_use)


class ManagedTransaction:
    """
    async with 용 트랜잭션

    쓰기는 BEGIN IMMEDIATE, 읽기는 BEGIN DEFERRED.
    블록이 예외로 끝나면 롤백, 아니면 커밋합니다.
    """

    def __init__(self, db: 'SQLiteDatabase', readonly: bool = False):
        self._db = db
        self._readonly = readonly
        self._pooled: PooledConnection | None = None
        self._ctx: TransactionContext | None = None

    async def __aenter__(self) -> TransactionContext:
        self._pooled = await self._db.pool.acquire()
        conn = self._pooled.connection
        try:
            await conn.execute("BEGIN DEFERRED" if self._readonly else "BEGIN IMMEDIATE")
        except aiosqlite.Error as e:
            await self._db.pool.release(self._pooled)
            raise TransactionError(f"Failed to begin transaction on '{self._db.name}': {e}") from e

        self._ctx = TransactionContext(conn, self._readonly)
        return self._ctx

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        conn = self._pooled.connection
        try:
            if exc_type:
                await conn.rollback()
                logger.debug("Transaction rolled back")
            else:
                try:
                    await conn.commit()
                except aiosqlite.Error as e:
                    await conn.rollback()
                    raise TransactionError(f"Failed to commit on '{self._db.name}': {e}") from e
        finally:
            await self._db.pool.release(self._pooled)


class SQLiteDatabase(BaseDatabase):
    """
    SQLite 데이터베이스 구현

    사용 예시:
        db = await SQLiteDatabase.create('default', {'path': './data/jobs.db'})
        async with db.transaction() as ctx:
            await queries.insert_job(ctx.connection, ...)
    """

    def __init__(self, name: str, config: dict[str, Any]):
        super().__init__(name)
        self._config = config
        self._pool: AsyncConnectionPool | None = None

    @classmethod
    async def create(cls, name: str, config: dict[str, Any]) -> 'SQLiteDatabase':
        """인스턴스 생성 + 풀 초기화 + 스키마 생성"""
        instance = cls(name, config)
        await instance._initialize()
        return instance

    async def _initialize(self) -> None:
        pool_cfg = self._config.get('pool', {})
        opts = self._config.get('options', {})
        self._pool = AsyncConnectionPool(
            db_path=self._config.get('path', f'./data/{self.name}.db'),
            pool_config=PoolConfig(**pool_cfg),
            sqlite_options=SqliteOptions(**opts),
        )
        await self._pool.initialize()
        await self._create_schema()
        logger.info(f"SQLiteDatabase '{self.name}' initialized")

    async def _create_schema(self) -> None:
        """init.sql의 테이블/인덱스 생성 (IF NOT EXISTS)"""
        queries = aiosql.from_path(str(INIT_SQL_PATH), "aiosqlite")
        pooled = await self._pool.acquire()
        try:
            await queries.create_generation_jobs_table(pooled.connection)
            await queries.create_work_executions_table(pooled.connection)
            await queries.create_indexes(pooled.connection)
        finally:
            await self._pool.release(pooled)

    def transaction(self, readonly: bool = False) -> ManagedTransaction:
        """트랜잭션 컨텍스트 매니저 반환"""
        return ManagedTransaction(self, readonly)

    @property
    def pool(self) -> AsyncConnectionPool:
        if self._pool is None:
            raise RuntimeError(f"Database '{self.name}' not initialized")
        return self._pool

    async def close(self) -> None:
        if self._pool:
            await self._pool.close()
        logger.info(f"SQLiteDatabase '{self.name}' closed")
