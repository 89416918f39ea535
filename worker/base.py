import asyncio
import logging
from abc import ABC, abstractmethod

from worker.exception import HandlerNotFoundError, RecoverableWorkError
from worker.model.handler import HandlerParams, HandlerResult, WorkStatus

__all__ = [
    'handler',
    'get_handler',
    'get_registered_handlers',
    'BaseHandler',
    'BoundedRetryHandler',
    'HandlerNotFoundError',
]

logger = logging.getLogger(__name__)

# 핸들러 레지스트리 (모듈 레벨)
_registry: dict[str, type["BaseHandler"]] = {}


def handler(name: str):
    """핸들러 등록 데코레이터"""
    def decorator(cls):
        _registry[name] = cls
        return cls
    return decorator


def get_handler(name: str) -> "BaseHandler":
    """핸들러 인스턴스 반환"""
    if name not in _registry:
        raise HandlerNotFoundError(name)
    return _registry[name]()


def get_registered_handlers() -> dict[str, type["BaseHandler"]]:
    """등록된 핸들러 목록 반환 (테스트용)"""
    return _registry.copy()


class BaseHandler(ABC):
    """핸들러 기본 클래스"""

    @abstractmethod
    async def execute(self, params: HandlerParams) -> HandlerResult:
        """
        잡 실행 로직

        Args:
            params: 핸들러 입력 파라미터 (HandlerParams)

        Returns:
            HandlerResult: status로 성공/건너뜀/재시도/실패를 구분

        Raises:
            Exception: 예상하지 못한 오류 (Executor가 FAILED로 기록)
        """
        pass


class BoundedRetryHandler(BaseHandler):
    """
    시도 횟수 상한이 있는 핸들러

    회복 가능한 실패가 나면 스케줄러가 보고한 시도 번호(params.attempt)가
    max_attempts 미만일 때만 RETRY를 돌려주고, 상한에 도달하면 FAILURE를 돌려줍니다.
    SKIPPED 결과는 성공으로 취급합니다.
    """

    max_attempts: int = 3
    recoverable_errors: tuple[type[BaseException], ...] = (
        RecoverableWorkError,
        ConnectionError,
        asyncio.TimeoutError,
    )

    async def execute(self, params: HandlerParams) -> HandlerResult:
        try:
            return await self.do_work(params)
        except self.recoverable_errors as e:
            reason = str(e) or type(e).__name__
            if should_retry(params.attempt, self.max_attempts):
                logger.info(
                    f"{type(self).__name__}: recoverable failure, requesting retry "
                    f"(attempt {params.attempt}/{self.max_attempts}): {reason}"
                )
                return HandlerResult(status=WorkStatus.RETRY, error=reason)

            logger.warning(
                f"{type(self).__name__}: giving up after {params.attempt} attempts: {reason}"
            )
            return HandlerResult(
                status=WorkStatus.FAILURE,
                error=f"{reason} (failed after {params.attempt} attempts)",
            )

    @abstractmethod
    async def do_work(self, params: HandlerParams) -> HandlerResult:
        """
        실제 작업

        Raises:
            RecoverableWorkError: 재시도로 회복 가능한 실패
        """
        pass


def should_retry(attempt: int, max_attempts: int) -> bool:
    """시도 번호(1부터)가 상한 미만이면 재시도"""
    return attempt < max_attempts
