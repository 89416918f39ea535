"""
생성 잡 모델 정의
"""

import json
import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel


class JobStatus(str, Enum):
    """잡 상태"""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


class Job(BaseModel):
    """생성 잡 엔티티"""
    id: str
    payload: str
    status: JobStatus = JobStatus.PENDING
    scheduler_handle: str | None = None
    error_message: str | None = None
    result: str | None = None
    dispatch_count: int = 0
    revision: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def create(cls, payload: Any, status: JobStatus = JobStatus.PROCESSING) -> "Job":
        """새 잡 생성 (id 발급, dict payload는 JSON 직렬화)"""
        if not isinstance(payload, str):
            payload = json.dumps(payload, ensure_ascii=False)
        return cls(id=str(uuid.uuid4()), payload=payload, status=status)
