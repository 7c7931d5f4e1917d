# ─────────────────────────────────────────────────────────────────────────────
# Logging Configuration — structlog over stdlib logging
# ─────────────────────────────────────────────────────────────────────────────
# Every log line produced while a generation stream is open carries the
# request_id / user_id / blockchain bound by bind_generation_context().
# ─────────────────────────────────────────────────────────────────────────────


import logging
import sys
import uuid

import structlog

# Third-party loggers that are chatty at INFO and drown out stream events.
_NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "sqlalchemy.engine")


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """Route structlog and stdlib logging through one ProcessorFormatter.

    JSON output is one object per line (timestamp, level, logger, bound
    fields); the console renderer is for local development.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper()))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_generation_context(user_id: str | None, blockchain: str | None) -> str:
    """Bind per-request fields to the current context; returns the request id."""
    request_id = uuid.uuid4().hex[:12]
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        user_id=user_id,
        blockchain=blockchain,
    )
    return request_id


def clear_generation_context() -> None:
    structlog.contextvars.unbind_contextvars("request_id", "user_id", "blockchain")
