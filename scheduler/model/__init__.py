"""Scheduler 모델"""

from scheduler.model.outcome import Outcome, OutcomeKind

__all__ = ['Outcome', 'OutcomeKind']
