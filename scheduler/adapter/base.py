"""Scheduler Adapter 기본 인터페이스"""
from abc import ABC, abstractmethod

from scheduler.model.outcome import Outcome


class BaseSchedulerAdapter(ABC):
    """
    스케줄러 어댑터 기본 클래스

    외부 작업 실행 시스템에 잡을 넣고(enqueue), handle로 실행 결과를 조회합니다.
    잡 레코드는 저장하지 않으며, handle과 실행 결과의 연결만 담당합니다.
    """

    @abstractmethod
    async def enqueue(self, job_id: str, payload: str) -> str:
        """
        잡 실행 요청

        Args:
            job_id: 잡 ID (연결용)
            payload: 직렬화된 잡 입력

        Returns:
            str: 스케줄러 handle

        Raises:
            TransientDispatchError: 스케줄러에 접근할 수 없음
        """
        ...

    @abstractmethod
    async def query_outcome(self, handle: str) -> Outcome:
        """
        실행 결과 조회 (부작용 없음, 반복 호출 가능)

        Returns:
            Outcome: handle을 찾을 수 없으면 Outcome.unknown()

        Raises:
            SchedulerUnavailableError: 스케줄러 조회 실패
            MalformedHandleError: handle 형식 오류
        """
        ...
