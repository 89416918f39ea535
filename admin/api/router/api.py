"""Admin API 라우터 (모든 API 통합)"""

import logging

from fastapi import APIRouter, HTTPException, Query, Response
from fastapi.responses import JSONResponse

from admin.api.model.common import PageParams
from admin.api.model.job import JobResponse, JobListResponse, SubmitRequest, SweepResponse
from admin.api.handler.job import JobHandler
from admin.exception import JobNotFoundError
from database import get_db
from generation.model.job import JobStatus
from scheduler.exception import TransientDispatchError

logger = logging.getLogger(__name__)

router = APIRouter()

# 핸들러 인스턴스
job_handler = JobHandler()


# ============================================
# JOB API
# ============================================

@router.post("/api/jobs", response_model=JobResponse, status_code=201, tags=["Job"])
async def submit_job(request: SubmitRequest):
    """잡 제출"""
    try:
        return await job_handler.submit(request)
    except TransientDispatchError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/api/jobs", response_model=JobListResponse, tags=["Job"])
async def get_jobs(
    page: int = Query(default=1, ge=1, description="페이지 번호"),
    size: int = Query(default=20, ge=1, le=100, description="페이지 크기"),
    status: JobStatus | None = Query(default=None, description="상태 필터"),
):
    """잡 목록 조회"""
    items, total = await job_handler.get_list(page=page, size=size, status=status)
    return JobListResponse(
        items=items,
        total=total,
        page=page,
        size=size,
        pages=PageParams(page=page, size=size).pages(total),
    )


@router.get("/api/jobs/{job_id}", response_model=JobResponse, tags=["Job"])
async def get_job(job_id: str):
    """잡 상세 조회"""
    try:
        return await job_handler.get_by_id(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/api/jobs/{job_id}/retry", response_model=JobResponse, tags=["Job"])
async def retry_job(job_id: str):
    """잡 재시도"""
    try:
        return await job_handler.retry(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TransientDispatchError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.delete("/api/jobs/{job_id}", status_code=204, tags=["Job"])
async def delete_job(job_id: str):
    """잡 삭제"""
    try:
        await job_handler.delete(job_id)
        return Response(status_code=204)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ============================================
# SWEEP API
# ============================================

@router.post("/api/sweep", response_model=SweepResponse, tags=["Sweep"])
async def run_sweep():
    """오래된 PROCESSING 잡 보정 즉시 실행"""
    return await job_handler.sweep()


# ============================================
# Health Check
# ============================================

@router.get("/health", tags=["Health"])
async def health_check():
    """서버 상태 확인 (liveness probe)"""
    try:
        db = get_db()
        db_status = "connected" if db.pool.available > 0 else "busy"
    except Exception:
        db_status = "disconnected"

    return {
        "status": "healthy",
        "database": db_status,
        "version": "1.0.0",
    }


@router.get("/ready", tags=["Health"])
async def ready_check():
    """DB 연결 상태 확인 (readiness probe)"""
    try:
        db = get_db()
        async with db.transaction(readonly=True) as ctx:
            await ctx.fetch_one("SELECT 1")
        return {"status": "ready", "database": "ok"}
    except Exception as e:
        return JSONResponse(
            status_code=503,
            content={"status": "not ready", "error": str(e)}
        )
