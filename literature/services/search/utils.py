"""检索工具函数

日期解析与分面分页参数提取。
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import TypeVar

from literature.schemas.search import LiteratureSearchRequest

P = TypeVar("P")

# 分面默认分页
DEFAULT_FACET_OFFSET = 0
DEFAULT_FACET_LIMIT = 10

# terms 聚合允许的最大桶数
MAX_SIZE_TERMS_AGGS = 1_200_000

# 年份为 0000 的日期表示公元 1 年
_FIRST_YEAR_SENTINEL = "0000"
_FIRST_YEAR_PLACEHOLDER = "1970"

_YEAR_PATTERN = re.compile(r"^\d{4}$")
_YEAR_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")
_SPACED_OFFSET_PATTERN = re.compile(r"\s+(Z|[+-]\d{2}:?\d{2})$")
_FRACTION_PATTERN = re.compile(r"(T\d{2}:\d{2}:\d{2})\.(\d+)")


def _normalize_fraction(match: re.Match[str]) -> str:
    # fromisoformat 只稳定支持 6 位小数
    digits = match.group(2)[:6].ljust(6, "0")
    return f"{match.group(1)}.{digits}"


def parse_date(value: str | None) -> datetime | None:
    """解析 ES 中的历史日期格式

    支持 ``yyyy``、``yyyy-MM``、``yyyy-MM-dd``、``yyyy-MM-ddTHH:mm``、``yyyy-MM-ddTHH:mm:ss``，
    可带小数秒和时区（``Z``、``+hh:mm``，时区前允许有空格）。不带时区的按 UTC 处理。

    Args:
        value: 日期字符串

    Returns:
        UTC 时区的 datetime，空字符串返回 None

    Raises:
        ValueError: 无法解析
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    first_year = text.startswith(_FIRST_YEAR_SENTINEL)
    if first_year:
        text = text.replace(_FIRST_YEAR_SENTINEL, _FIRST_YEAR_PLACEHOLDER, 1)

    if _YEAR_PATTERN.match(text):
        parsed = datetime(int(text), 1, 1, tzinfo=timezone.utc)
    elif match := _YEAR_MONTH_PATTERN.match(text):
        parsed = datetime(int(match.group(1)), int(match.group(2)), 1, tzinfo=timezone.utc)
    else:
        text = _SPACED_OFFSET_PATTERN.sub(r"\1", text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        text = _FRACTION_PATTERN.sub(_normalize_fraction, text)
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        else:
            parsed = parsed.astimezone(timezone.utc)

    if first_year:
        parsed = parsed.replace(year=1)
    return parsed


def extract_facet_offset(request: LiteratureSearchRequest, facet: P) -> int:
    """分面偏移量：单个分面的分页 > 请求级分面偏移量 > 默认值"""
    page = request.get_facet_page(facet)
    if page is not None:
        return page.offset
    return request.facet_offset if request.facet_offset is not None else DEFAULT_FACET_OFFSET


def extract_facet_limit(request: LiteratureSearchRequest, facet: P) -> int:
    """分面数量：单个分面的分页 > 请求级分面数量 > 默认值"""
    page = request.get_facet_page(facet)
    if page is not None:
        return page.limit
    return request.facet_limit if request.facet_limit is not None else DEFAULT_FACET_LIMIT
