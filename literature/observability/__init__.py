"""可观测性模块"""

from literature.observability.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
