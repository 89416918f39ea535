"""Sweeper 모델"""

from sweeper.model.sweeper import SweeperConfig, SweepReport

__all__ = ['SweeperConfig', 'SweepReport']
