"""생성 잡 모델"""

from generation.model.job import Job, JobStatus

__all__ = ['Job', 'JobStatus']
