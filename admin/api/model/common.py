"""공통 모델 정의"""

from pydantic import BaseModel, Field


class PageParams(BaseModel):
    """페이징 파라미터"""
    page: int = Field(default=1, ge=1, description="페이지 번호")
    size: int = Field(default=20, ge=1, le=100, description="페이지 크기")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size

    def pages(self, total: int) -> int:
        return (total + self.size - 1) // self.size


class ErrorDetail(BaseModel):
    """에러 상세 정보"""
    code: str
    message: str


class ErrorResponse(BaseModel):
    """에러 응답"""
    error: ErrorDetail
