"""Worker 모델"""

from worker.model.executor import JobInfo
from worker.model.handler import HandlerParams, HandlerResult, WorkStatus

__all__ = ['JobInfo', 'HandlerParams', 'HandlerResult', 'WorkStatus']
