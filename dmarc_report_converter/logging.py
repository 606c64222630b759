import logging
import logging.config
from typing import Any, Dict, Union

import structlog

LOG_FORMATS = ("plain", "colored", "json")


def configure_logging(*, log_level: Union[str, int] = logging.INFO, log_format="plain"):
    """Route structlog and stdlib logging through one stderr handler.

    ``log_format`` selects one of :data:`LOG_FORMATS`.
    """
    if log_format not in LOG_FORMATS:
        raise ValueError(f"invalid log format {log_format!r}")
    level = parse_log_level(log_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.dev.set_exc_info,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    foreign_pre_chain = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.format_exc_info,
    ]
    console_processors = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
    ]
    json_processors = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.dict_tracebacks,
        structlog.processors.JSONRenderer(),
    ]

    logging_config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": console_processors
                + [structlog.dev.ConsoleRenderer(colors=False)],
                "foreign_pre_chain": foreign_pre_chain,
            },
            "colored": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": console_processors
                + [structlog.dev.ConsoleRenderer(colors=True)],
                "foreign_pre_chain": foreign_pre_chain,
            },
            "json": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": json_processors,
                "foreign_pre_chain": foreign_pre_chain,
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "formatter": log_format,
            },
        },
        "root": {"handlers": ["default"], "level": level},
    }
    logging.config.dictConfig(logging_config)


def parse_log_level(level: Union[str, int]) -> int:
    if isinstance(level, str):
        level = level.lower()
        if level == "debug":
            return logging.DEBUG
        if level == "info":
            return logging.INFO
        if level == "warning":
            return logging.WARNING
        if level == "error":
            return logging.ERROR
        if level == "critical":
            return logging.CRITICAL
        raise ValueError("invalid log level")
    return level
