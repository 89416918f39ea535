"""생성 잡 모듈 - 제출, 재시도, 완료 기록"""

from generation.model.job import Job, JobStatus
from generation.repository import BaseJobRepository, SQLiteJobRepository
from generation.service import JobSubmissionService

__all__ = [
    "Job",
    "JobStatus",
    "BaseJobRepository",
    "SQLiteJobRepository",
    "JobSubmissionService",
]
