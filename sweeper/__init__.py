"""Sweeper 모듈 - 오래된 PROCESSING 잡을 스케줄러 결과에 맞춰 보정"""

from sweeper.main import ReconciliationSweeper
from sweeper.model.sweeper import SweeperConfig, SweepReport

__all__ = ["ReconciliationSweeper", "SweeperConfig", "SweepReport"]
