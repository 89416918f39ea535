"""Worker 모듈 - work_executions 폴링 및 핸들러 실행"""
