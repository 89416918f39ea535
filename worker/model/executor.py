"""
Worker 모델 - Executor 관련 구조체
"""

from dataclasses import dataclass


@dataclass
class JobInfo:
    """실행할 work_executions 레코드 정보"""
    id: int
    handle: str
    job_id: str | None
    handler_name: str
    params: str | None
    attempt_count: int  # claim 이전 값
    timeout_seconds: int
