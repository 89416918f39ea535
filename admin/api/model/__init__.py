"""Admin API 모델 패키지"""

from admin.api.model.common import (
    PageParams,
    ErrorResponse,
    ErrorDetail,
)
from admin.api.model.job import (
    SubmitRequest,
    JobResponse,
    JobListResponse,
    SweepResponse,
)

__all__ = [
    'PageParams',
    'ErrorResponse',
    'ErrorDetail',
    'SubmitRequest',
    'JobResponse',
    'JobListResponse',
    'SweepResponse',
]
