"""Scheduler Adapter 구현"""

from scheduler.adapter.base import BaseSchedulerAdapter
from scheduler.adapter.worker import WorkerSchedulerAdapter

__all__ = ['BaseSchedulerAdapter', 'WorkerSchedulerAdapter']
