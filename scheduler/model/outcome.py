"""
스케줄러 실행 결과 모델

query_outcome()은 예외 대신 Outcome 값을 돌려줍니다.
kind가 FAILED이면 reason, SUCCEEDED이면 result가 채워질 수 있습니다.
"""

from dataclasses import dataclass
from enum import Enum


class OutcomeKind(str, Enum):
    """스케줄러가 관측한 실행 상태"""
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"  # handle을 찾을 수 없음

    @property
    def is_finished(self) -> bool:
        return self in (OutcomeKind.SUCCEEDED, OutcomeKind.FAILED, OutcomeKind.CANCELLED)


@dataclass(frozen=True)
class Outcome:
    """실행 결과 (tagged value)"""
    kind: OutcomeKind
    reason: str | None = None
    result: str | None = None

    @classmethod
    def running(cls) -> "Outcome":
        return cls(OutcomeKind.RUNNING)

    @classmethod
    def succeeded(cls, result: str | None = None) -> "Outcome":
        return cls(OutcomeKind.SUCCEEDED, result=result)

    @classmethod
    def failed(cls, reason: str | None = None) -> "Outcome":
        return cls(OutcomeKind.FAILED, reason=reason)

    @classmethod
    def cancelled(cls) -> "Outcome":
        return cls(OutcomeKind.CANCELLED)

    @classmethod
    def unknown(cls) -> "Outcome":
        return cls(OutcomeKind.UNKNOWN)
