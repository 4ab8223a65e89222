from datetime import datetime
from typing import Any, Optional

import pytz


def utc_now() -> datetime:
    """当前UTC时间"""
    return datetime.now(pytz.utc)


def format_timestamp(value: Any) -> Optional[str]:
    """格式化数据库中的时间字段，旧数据可能是字符串"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def percentage(part: int, total: int) -> int:
    """四舍五入的百分比，total为0时返回0"""
    if not total:
        return 0
    return round(part / total * 100)
