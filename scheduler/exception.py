"""
Scheduler Adapter 관련 예외 클래스 정의

enqueue 실패는 TransientDispatchError로 호출자에게 전달되고,
query_outcome 실패(SchedulerUnavailableError, MalformedHandleError)는
Sweeper가 흡수하여 잡 실패로 기록합니다.
"""


class SchedulerError(Exception):
    """Scheduler 기본 예외"""
    pass


class TransientDispatchError(SchedulerError):
    """enqueue 시점에 스케줄러에 접근할 수 없음 (재시도 가능)"""
    def __init__(self, job_id: str, message: str | None = None):
        self.job_id = job_id
        self.message = message or f"Failed to dispatch job: {job_id}"
        super().__init__(self.message)


class SchedulerUnavailableError(SchedulerError):
    """스케줄러 조회 실패 (연결 불가, 저장소 오류)"""
    pass


class MalformedHandleError(SchedulerError):
    """해석할 수 없는 handle 문자열"""
    def __init__(self, handle: str):
        self.handle = handle
        self.message = f"Malformed scheduler handle: {handle!r}"
        super().__init__(self.message)
