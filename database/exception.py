"""
Database 관련 예외 클래스 정의

잡 저장소에서 발생하는 모든 영속성 오류는 DatabaseError 계열로 올라갑니다.
호출자는 이 예외를 삼키지 않고 그대로 전파합니다.
"""


class DatabaseError(Exception):
    """Database 기본 예외"""
    pass


class DatabaseNotFoundError(DatabaseError):
    """등록되지 않은 DB 이름"""
    def __init__(self, name: str):
        self.name = name
        self.message = f"Database not registered: {name}"
        super().__init__(self.message)


class ConnectionPoolExhaustedError(DatabaseError):
    """커넥션풀 고갈 (타임아웃 내 연결 획득 실패)"""
    pass


class TransactionError(DatabaseError):
    """트랜잭션 시작/커밋/롤백 실패"""
    pass


class ReadOnlyTransactionError(TransactionError):
    """readonly 트랜잭션에서 쓰기 쿼리 실행"""
    pass


class QueryExecutionError(DatabaseError):
    """쿼리 실행 실패"""
    def __init__(self, query_name: str, message: str):
        self.query_name = query_name
        self.message = f"Query '{query_name}' failed: {message}"
        super().__init__(self.message)
