"""샘플 생성 핸들러 - 로컬 실행/테스트용"""

import logging
from typing import Any

from common.clock import format_timestamp
from worker.base import handler
from worker.job.generation import GenerationHandler

logger = logging.getLogger(__name__)


@handler("sample_generation")
class SampleGenerationHandler(GenerationHandler):
    """입력을 그대로 담은 결과를 생성"""

    async def generate(self, request: Any) -> Any:
        logger.info(f"SampleGenerationHandler received: {request}")
        return {
            "message": "Generated by SampleGenerationHandler",
            "request": request,
            "generated_at": format_timestamp(),
        }
