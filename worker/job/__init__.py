"""핸들러 모듈 (load_handlers가 재귀 import)"""
