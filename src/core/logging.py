"""
Structured logging with structlog.

Every entry carries the app version, the request id of the HTTP request
being served and, inside an upload pipeline step, that step's name.
"""

import inspect
import logging
import sys
import time
from contextvars import ContextVar
from functools import wraps
from typing import Any, Dict, Optional

import structlog

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
stage_var: ContextVar[Optional[str]] = ContextVar("stage", default=None)

APP_VERSION = "1.0.0"

# Chatty client libraries, kept at WARNING
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "asyncio", "hpack")


def add_log_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    event_dict["version"] = APP_VERSION

    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id

    stage = stage_var.get()
    if stage:
        event_dict["stage"] = stage

    return event_dict


def setup_logging(log_level: str = "INFO", json_format: bool = True):
    """
    Route structlog through stdlib logging on stdout.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR
        json_format: JSON lines when True, colored console output otherwise
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if json_format:
        # Garment names and messages are Spanish; keep them readable
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            add_log_context,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class LogContext:
    """
    Tag every log line emitted while handling one HTTP request.

    Usage:
        with LogContext(request_id=request_id):
            response = await call_next(request)
    """

    def __init__(self, request_id: str):
        self.request_id = request_id
        self._token = None

    def __enter__(self):
        self._token = request_id_var.set(self.request_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        request_id_var.reset(self._token)
        return False


def with_logging(stage: str):
    """
    Log the start, duration and outcome of one upload pipeline step.

    Usage:
        @with_logging("background_removal")
        async def _remove_background(self, usuario_id, image_url):
            ...
    """
    def decorator(func):
        if not inspect.iscoroutinefunction(func):
            raise TypeError("with_logging only wraps coroutine functions")

        @wraps(func)
        async def wrapper(*args, **kwargs):
            logger = get_logger(func.__module__)
            token = stage_var.set(stage)
            logger.info("stage_started")
            start = time.perf_counter()

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    "stage_failed",
                    duration_ms=int((time.perf_counter() - start) * 1000),
                    error=str(e),
                    error_type=type(e).__name__
                )
                raise
            else:
                logger.info("stage_completed", duration_ms=int((time.perf_counter() - start) * 1000))
                return result
            finally:
                stage_var.reset(token)

        return wrapper

    return decorator
