"""생성 잡 핸들러 기본 클래스

잡 payload(JSON)를 디코딩해 generate()에 넘기고, 생성 결과를 HandlerResult.data로 돌려줍니다.
생성 로직 자체는 하위 클래스가 구현합니다.
"""

import asyncio
import json
import logging
from abc import abstractmethod
from typing import Any

from worker.base import BoundedRetryHandler
from worker.exception import RecoverableWorkError
from worker.model.handler import HandlerParams, HandlerResult, WorkStatus

logger = logging.getLogger(__name__)


class GenerationHandler(BoundedRetryHandler):
    """생성 잡 핸들러 (시도당 timeout_seconds, 최대 max_attempts회)"""

    timeout_seconds: float = 300

    async def do_work(self, params: HandlerParams) -> HandlerResult:
        try:
            request = json.loads(params.payload) if isinstance(params.payload, str) else params.payload
        except json.JSONDecodeError as e:
            return HandlerResult(status=WorkStatus.FAILURE, error=f"Invalid payload: {e}")

        try:
            artifact = await asyncio.wait_for(self.generate(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise RecoverableWorkError(f"Generation timed out after {self.timeout_seconds:g}s") from e

        if artifact is None:
            return HandlerResult(status=WorkStatus.FAILURE, error="Generator returned no result")

        logger.info(f"{type(self).__name__}: generated result for job_id={params.job_id}")
        return HandlerResult(data=artifact)

    @abstractmethod
    async def generate(self, request: Any) -> Any:
        """
        payload -> 생성 결과

        Raises:
            RecoverableWorkError, ConnectionError: 재시도 대상
            Exception: 그 외에는 즉시 실패
        """
        pass
