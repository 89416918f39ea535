"""DB 저장용 UTC 시각 유틸리티"""

from datetime import datetime, timezone

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime | None = None) -> str:
    """datetime -> 'YYYY-MM-DD HH:MM:SS' (UTC, 문자열 비교로 정렬 가능)"""
    value = value or utc_now()
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(TIMESTAMP_FORMAT)
