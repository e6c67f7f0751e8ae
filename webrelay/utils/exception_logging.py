"""
Exception formatting helpers used on the error path of the proxy route.

Both helpers are written so that they never raise themselves: an error page
must still be rendered when the exception object is broken.
"""

import logging


def _safe_str(obj) -> str:
    """Convert ``obj`` to a string, falling back to repr and then the type name."""
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} (string conversion failed)>"


def _causes(exception: BaseException) -> list:
    """Walk the ``__cause__`` chain (FetchError wraps the httpx error)."""
    chain = []
    seen = {id(exception)}
    current = getattr(exception, "__cause__", None)
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        chain.append(current)
        current = getattr(current, "__cause__", None)
    return chain


def format_exception_message(exception: BaseException) -> str:
    """
    Short, user-facing description of ``exception``.

    Args:
        exception: The exception to format

    Returns:
        The exception message, or its type name when the message is empty
    """
    if exception is None:
        return "None"
    message = _safe_str(exception)
    if message:
        return message
    return type(exception).__name__


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: BaseException,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception together with the chain of underlying causes.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g., "[Proxy]", "[Fetch]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
    """
    try:
        logger.log(
            level,
            f"{prefix} {type(exception).__name__}: {_safe_str(exception)}",
            exc_info=exception,
        )
        for i, cause in enumerate(_causes(exception)):
            logger.log(
                level,
                f"{prefix} Caused by ({i + 1}) {type(cause).__name__}: "
                f"{_safe_str(cause)}",
            )
    except Exception:
        try:
            logger.log(level, f"{prefix} Exception (logging failed)")
        except Exception:
            pass
