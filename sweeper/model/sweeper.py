"""
Sweeper 설정 및 결과 모델
"""

from dataclasses import dataclass, field

from pydantic import BaseModel, Field


class SweeperConfig(BaseModel):
    """ReconciliationSweeper 설정"""
    database: str = Field(default="default", description="database.yaml에 정의된 DB 이름")
    stale_threshold_seconds: int = Field(default=3600, ge=60, description="PROCESSING 상태로 이 시간 이상 머문 잡이 대상")
    schedule: str = Field(default="0 * * * *", description="실행 주기 (cron 표현식)")
    run_on_start: bool = True
    max_concurrency: int = Field(default=5, ge=1, le=50)


@dataclass
class SweepReport:
    """sweep 1회 결과"""
    scanned: int = 0
    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    untouched: list[str] = field(default_factory=list)

    @property
    def repaired(self) -> int:
        return len(self.succeeded) + len(self.failed)
