import logging
import typing as t
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

_MASKED_VALUE = "***"


def setup_logging(level: int = logging.INFO, *, json_logs: bool = False) -> None:
    """
    Route fetchtray structlog output through stdlib logging.

    Controller and transport events carry their context as keyword fields
    (``url``, ``status_code``, ``request_type``...). Values bound with
    ``logging_context`` are merged into every entry. Request headers are
    logged masked.

    Parameters
    ----------
    level : int, optional
        Level applied to the ``fetchtray`` logger.
    json_logs : bool, optional
        Render one JSON object per entry instead of colored console lines.
    """
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=True)
    )
    logging.getLogger("fetchtray").setLevel(level)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


@contextmanager
def logging_context(**required_context: t.Any) -> Iterator[None]:
    """
    Bind context values for the duration of the block.

    Keys already bound by an outer block are left untouched.
    """
    current = structlog.contextvars.get_contextvars()
    to_bind = {k: v for k, v in required_context.items() if k not in current}

    if to_bind:
        with structlog.contextvars.bound_contextvars(**to_bind):
            yield
    else:
        yield


def mask_headers(headers: t.Mapping[str, str] | None) -> dict[str, str]:
    """
    Replace header values with a mask so they can be logged.
    """
    if not headers:
        return {}
    return {key: _MASKED_VALUE for key in headers}
