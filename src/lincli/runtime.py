"""Runtime helpers for lin CLI command execution."""

from __future__ import annotations

import time
from typing import Any, Protocol

from .errors import LinCliError, classify_error
from .logging import get_logger
from .ux import print_error


class _HandlerCallable(Protocol):
    def __call__(self) -> Any: ...


def execute_command(handler: _HandlerCallable, command: str) -> int:
    """Run a handler, timing it and turning reported failures into exit code 1.

    :class:`LinCliError` subclasses are printed to stderr; anything else is
    logged and propagates.
    """
    logger = get_logger()
    start = time.perf_counter()
    logger.log_operation("command_start", command=command)
    try:
        result = handler()
    except LinCliError as exc:
        info = classify_error(exc)
        logger.debug("command failed", command=command, category=info.category)
        print_error(info.message)
        exit_code = 1
    except Exception as exc:
        logger.log_error(f"command {command} crashed", error=str(exc), command=command)
        raise
    else:
        exit_code = int(result) if result is not None else 0
    logger.log_performance(
        "command", (time.perf_counter() - start) * 1000, command=command, exit_code=exit_code
    )
    return exit_code


__all__ = ["execute_command"]
