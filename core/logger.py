"""Structured logging — coloured console in dev, JSON lines elsewhere.

Every record carries the app name and environment via structlog
contextvars, so a workflow's events can be grepped out of shared logs.
"""

from __future__ import annotations

import logging
import sys

import structlog

from config.settings import Settings, settings

# Per-request / per-call chatter from the HTTP and RPC stacks
NOISY_LOGGERS = ("httpx", "httpcore", "web3", "urllib3")


def _renderer(config: Settings) -> structlog.types.Processor:
    if config.APP_ENV == "dev":
        return structlog.dev.ConsoleRenderer(colors=True)
    return structlog.processors.JSONRenderer()


def setup_logging(config: Settings | None = None, level: str | None = None) -> None:
    """Route structlog through a single stdout handler on the root logger.

    Parameters
    ----------
    config:
        Settings to read ``APP_ENV`` / ``APP_NAME`` / ``LOG_LEVEL`` from;
        the module-level settings by default.
    level:
        Overrides ``LOG_LEVEL`` (the CLI's ``--verbose`` passes ``DEBUG``).
    """
    config = config or settings
    level_name = (level or config.LOG_LEVEL).upper()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(config),
        ],
    ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level_name)

    quiet = level_name != "DEBUG"
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING if quiet else logging.NOTSET)

    structlog.contextvars.bind_contextvars(app=config.APP_NAME, env=config.APP_ENV)
