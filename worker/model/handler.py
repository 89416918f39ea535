"""
핸들러 입출력 모델

모든 핸들러가 공통으로 사용하는 파라미터 및 결과 모델.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class WorkStatus(str, Enum):
    """핸들러 실행 결과 구분"""
    SUCCESS = "SUCCESS"
    SKIPPED = "SKIPPED"  # 선행 조건 미충족, 성공으로 처리 (재시도 횟수 소모 없음)
    RETRY = "RETRY"      # 스케줄러에 재시도 요청 (backoff 적용)
    FAILURE = "FAILURE"


class HandlerParams(BaseModel):
    """핸들러 입력 파라미터 (공통)"""
    model_config = ConfigDict(extra='allow')  # 정의 안 된 필드도 허용

    job_id: str | None = None
    payload: Any = None
    attempt: int = 1  # 스케줄러가 보고한 시도 번호 (1부터)


class HandlerResult(BaseModel):
    """핸들러 실행 결과 (공통)"""
    model_config = ConfigDict(extra='allow')

    status: WorkStatus = WorkStatus.SUCCESS
    data: Any = None
    error: str | None = None

    @property
    def is_success(self) -> bool:
        return self.status in (WorkStatus.SUCCESS, WorkStatus.SKIPPED)
