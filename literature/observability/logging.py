"""日志配置

使用 structlog 实现结构化日志。检索流水线中的事件名统一使用 snake_case，
上下文通过关键字参数传入，例如 ``logger.info("search_executed", hits=10)``。
"""

import logging

import structlog


def configure_logging(
    environment: str = "development",
    log_level: str = "INFO",
    log_format: str = "console",
) -> None:
    """配置 structlog

    Args:
        environment: 运行环境，production 下强制 JSON 输出并关闭调用点信息
        log_level: 日志级别
        log_format: console 或 json
    """
    is_production = environment == "production"
    should_json = log_format == "json" or is_production

    if should_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if not is_production:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.LINENO,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                ]
            )
        )
    processors += [
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        renderer,
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(log_level.upper())),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None, **kwargs) -> structlog.stdlib.BoundLogger:
    """获取日志记录器

    Args:
        name: 日志记录器名称（通常使用 __name__）
        **kwargs: 额外的上下文变量

    Returns:
        BoundLogger 实例

    Examples:
        ```python
        log = get_logger(__name__)
        log.info("search_executed", index="literature", hits=20)

        # 或者带上下文变量
        log = get_logger(__name__, export_id="abc")
        log.info("page_fetched")
        ```
    """
    if name:
        kwargs["name"] = name
    return structlog.get_logger(**kwargs)

