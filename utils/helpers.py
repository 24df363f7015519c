# 헬퍼 함수들
import uuid
from datetime import datetime, timezone
from typing import Optional, Union

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def get_current_time() -> datetime:
    """현재 UTC 시간 반환"""
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """DB 저장용 UTC 문자열 (사전순 == 시간순)"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime(TIMESTAMP_FORMAT)


def new_post_id() -> str:
    """게시물 ID 생성"""
    return uuid.uuid4().hex


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """문자열/ datetime을 UTC aware datetime으로 변환, 실패 시 None"""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'} ago"


def time_ago(value: Union[str, datetime, None], now: Optional[datetime] = None) -> str:
    """생성 후 경과 시간을 사람이 읽기 쉬운 문자열로 변환

    누락/파싱 불가/미래 시각은 모두 "just now".
    """
    created = parse_timestamp(value)
    if created is None:
        return "just now"

    now = parse_timestamp(now) or get_current_time()
    seconds = int((now - created).total_seconds())
    if seconds < 60:
        return "just now"

    minutes = seconds // 60
    if minutes < 60:
        return _plural(minutes, "minute")

    hours = minutes // 60
    if hours < 24:
        return _plural(hours, "hour")

    return _plural(hours // 24, "day")
