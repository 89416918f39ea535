"""
Admin 관련 예외 클래스 정의
"""


class AdminError(Exception):
    """Admin 기본 예외"""
    pass


class JobNotFoundError(AdminError):
    """잡을 찾을 수 없음"""
    def __init__(self, job_id: str):
        self.job_id = job_id
        self.message = f"Job with id {job_id} not found"
        super().__init__(self.message)
