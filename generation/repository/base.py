"""잡 저장소 기본 인터페이스"""
from abc import ABC, abstractmethod
from datetime import datetime

from generation.model.job import Job, JobStatus


class BaseJobRepository(ABC):
    """
    잡 저장소 기본 클래스

    잡 레코드의 유일한 소유자입니다. 모든 쓰기는 job id 단위로 이루어지며,
    영속성 오류(DatabaseError)는 그대로 전파합니다.
    """

    @abstractmethod
    async def insert(self, job: Job) -> None:
        """잡 저장 (created_at/updated_at은 저장소가 기록)"""
        ...

    @abstractmethod
    async def get_by_id(self, job_id: str) -> Job | None:
        ...

    @abstractmethod
    async def list_all(self, status: JobStatus | None = None) -> list[Job]:
        """잡 목록 (최신순)"""
        ...

    @abstractmethod
    async def update_status(
        self,
        job_id: str,
        status: JobStatus,
        error_message: str | None = None,
        *,
        result: str | None = None,
        expected_handle: str | None = None,
        expected_revision: int | None = None,
    ) -> bool:
        """
        상태 변경

        - 종료 상태(SUCCEEDED/FAILED): 잡이 아직 미종료이고 handle이
          expected_handle과 같을 때만 반영 (compare-and-set)
          expected_revision을 주면 조회 이후 다른 쓰기가 없었을 때만 반영
        - 미종료 상태(PENDING/PROCESSING): 오류/결과/handle을 비우고 반영

        Returns:
            bool: 반영 여부
        """
        ...

    @abstractmethod
    async def update_handle(self, job_id: str, handle: str) -> bool:
        """
        스케줄러 handle 기록 (dispatch_count 증가)

        PROCESSING 잡에만 반영합니다.

        Returns:
            bool: 반영 여부
        """
        ...

    @abstractmethod
    async def list_by_status_older_than(self, status: JobStatus, cutoff: datetime) -> list[Job]:
        """status가 같고 updated_at이 cutoff 이전인 잡 목록"""
        ...

    @abstractmethod
    async def restore(self, job: Job) -> None:
        """스냅샷 상태(status, error_message, result, handle)로 되돌림"""
        ...

    @abstractmethod
    async def delete(self, job_id: str) -> bool:
        ...
