"""structlog setup for the pay engine.

Every log line carries the level, logger name and an ISO timestamp. Lines
written while a request is being served also carry its ``calculation_id``,
which the request middleware sets. Stage transitions of the calculation
pipeline are logged at DEBUG, so they only appear with ``DEBUG=true``.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any

import orjson
import structlog
from structlog.types import Processor

from src.core.config import settings

calculation_id_ctx: ContextVar[str | None] = ContextVar("calculation_id", default=None)


def _add_calculation_id(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Tag the event with the calculation being served, if any."""
    if calculation_id := calculation_id_ctx.get():
        event_dict["calculation_id"] = calculation_id
    return event_dict


def _orjson_serializer(obj: Any, **kwargs: Any) -> str:
    """Render an event with orjson; Decimal rates and TaxYear values become strings."""
    return orjson.dumps(obj, default=str).decode("utf-8")


def _use_json() -> bool:
    """JSON unless asked for console output, or running locally with no preference."""
    log_format = settings.log_format.lower() if settings.log_format else None
    if log_format is not None:
        return log_format == "json"
    return settings.environment != "development"


def configure_logging() -> None:
    """Install the structlog pipeline and route it through stdlib logging.

    The renderer is chosen by ``LOG_FORMAT`` ("json" or "console"). Without
    it, development gets coloured console output and every other
    environment gets one JSON object per line, with the event name under
    ``message``.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _add_calculation_id,
    ]
    if _use_json():
        processors += [
            structlog.processors.EventRenamer("message"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(serializer=_orjson_serializer),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if settings.debug else logging.INFO,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Logger for a module; pass ``__name__``."""
    return structlog.get_logger(name)
