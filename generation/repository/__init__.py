"""잡 저장소 (Persistence Interface)"""

from generation.repository.base import BaseJobRepository
from generation.repository.sqlite import SQLiteJobRepository

__all__ = ['BaseJobRepository', 'SQLiteJobRepository']
