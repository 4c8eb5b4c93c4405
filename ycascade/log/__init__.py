"""日志模块

使用示例:
    from ycascade.log import get_logger, setup_root_logger

    setup_root_logger(level="DEBUG")
    logger = get_logger("orm.cascade")
"""

from .logger import (
    setup_logger,
    setup_root_logger,
    create_formatter,
    MicrosecondFormatter,
    DEFAULT_LOG_FORMAT,
    LoggingConfigProtocol,
    logger,
    get_logger,
)

__all__ = [
    "setup_logger",
    "setup_root_logger",
    "create_formatter",
    "MicrosecondFormatter",
    "DEFAULT_LOG_FORMAT",
    "LoggingConfigProtocol",
    "logger",
    "get_logger",
]
