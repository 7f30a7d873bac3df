"""检索异常类型

- SearchRequestError: 请求无法编译（参数非法、分面数量超限等），在调用 ES 之前抛出
- SearchBackendError: ES 调用失败（连接、超时、非成功响应），带有是否可重试的标记

取值解析错误（枚举、日期、布尔值）不会抛出，只记录日志并丢弃对应字段。
"""

from __future__ import annotations

from elasticsearch import ApiError, ConnectionError, ConnectionTimeout

# 认为是临时故障的 HTTP 状态码
RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})


class LiteratureSearchError(Exception):
    """检索错误基类"""

    status_code: int = 500


class SearchRequestError(LiteratureSearchError):
    """请求编译错误（对应客户端错误）"""

    status_code = 400


class SearchBackendError(LiteratureSearchError):
    """ES 后端错误（对应服务端错误）

    核心层不做自动重试，``retryable`` 仅供调用方决策。
    """

    def __init__(self, message: str, retryable: bool = False) -> None:
        """初始化后端错误

        Args:
            message: 错误消息
            retryable: 是否为临时故障
        """
        super().__init__(message)
        self.retryable = retryable
        self.status_code = 503 if retryable else 500


def is_retryable_error(error: BaseException) -> bool:
    """判断 ES 异常是否为临时故障

    Args:
        error: 原始异常

    Returns:
        连接失败、超时以及 429/502/503/504 响应返回 True
    """
    if isinstance(error, (ConnectionError, ConnectionTimeout)):
        return True
    if isinstance(error, ApiError):
        return error.meta.status in RETRYABLE_STATUS_CODES
    return False


__all__ = [
    "LiteratureSearchError",
    "SearchRequestError",
    "SearchBackendError",
    "is_retryable_error",
    "RETRYABLE_STATUS_CODES",
]
