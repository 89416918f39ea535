"""생성 잡 API 모델 정의"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from generation.model.job import Job, JobStatus


class SubmitRequest(BaseModel):
    """잡 제출 요청"""
    payload: dict[str, Any] | list[Any] | str = Field(description="생성 요청 (JSON)")


class JobResponse(BaseModel):
    """잡 응답 모델"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    payload: str
    status: JobStatus
    scheduler_handle: str | None = None
    error_message: str | None = None
    result: str | None = None
    dispatch_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_job(cls, job: Job) -> "JobResponse":
        return cls.model_validate(job.model_dump())


class JobListResponse(BaseModel):
    """잡 목록 응답"""
    items: list[JobResponse]
    total: int
    page: int
    size: int
    pages: int


class SweepResponse(BaseModel):
    """보정 실행 결과"""
    scanned: int
    succeeded: list[str]
    failed: list[str]
    untouched: list[str]
