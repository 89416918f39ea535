"""Scheduler 모듈 - 외부 작업 실행 시스템과의 계약 (enqueue / query_outcome)"""

from scheduler.adapter.base import BaseSchedulerAdapter
from scheduler.model.outcome import Outcome, OutcomeKind
from scheduler.exception import (
    SchedulerError,
    TransientDispatchError,
    SchedulerUnavailableError,
    MalformedHandleError,
)

__all__ = [
    "BaseSchedulerAdapter",
    "Outcome",
    "OutcomeKind",
    "SchedulerError",
    "TransientDispatchError",
    "SchedulerUnavailableError",
    "MalformedHandleError",
]
