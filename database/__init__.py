"""
비동기 데이터베이스 패키지

사용 예시:
    from database import DatabaseRegistry, get_db

    await DatabaseRegistry.init_from_config(config)
    db = get_db('default')

    async with db.transaction() as ctx:
        await ctx.execute("INSERT INTO ...")

    async with db.transaction(readonly=True) as ctx:
        rows = await ctx.fetch_all("SELECT ...")
"""

from database.base import BaseDatabase
from database.registry import DatabaseRegistry, get_db
from database.exception import (
    DatabaseError,
    DatabaseNotFoundError,
    ConnectionPoolExhaustedError,
    TransactionError,
    ReadOnlyTransactionError,
    QueryExecutionError,
)

__all__ = [
    'BaseDatabase',
    'DatabaseRegistry',
    'get_db',
    'DatabaseError',
    'DatabaseNotFoundError',
    'ConnectionPoolExhaustedError',
    'TransactionError',
    'ReadOnlyTransactionError',
    'QueryExecutionError',
]
