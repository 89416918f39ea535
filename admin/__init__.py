"""Admin API 서버 - 생성 잡 관리"""
