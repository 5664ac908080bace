"""Common decorators for error translation and performance logging."""

from __future__ import annotations

import inspect
import struct
import time
from functools import wraps

from ..logging import get_logger
from ..exceptions import CorruptArtifactBody, SniffLoaderError


logger = get_logger(__name__)

# Low-level failures raised while decoding an artifact body
DECODE_ERRORS = (struct.error, UnicodeDecodeError, ValueError, EOFError)

_CORRUPT_SUGGESTION = (
    "The artifact may have been written by an older version or a parse that did "
    "not finish. Select the raw .pkt capture and parse it again."
)


def handle_decode_errors(func):
    """Wrap artifact readers to raise :class:`CorruptArtifactBody` on decode failure.

    The wrapped function must take the artifact path as its first argument.
    """

    @wraps(func)
    def wrapper(path, *args, **kwargs):
        try:
            return func(path, *args, **kwargs)
        except SniffLoaderError:
            raise
        except OSError as exc:
            logger.error("Reading %s failed in %s: %s", path, func.__name__, exc)
            raise CorruptArtifactBody(
                f"Sniff file could not be read: {exc}",
                context=str(path),
                suggestion=_CORRUPT_SUGGESTION,
            ) from exc
        except DECODE_ERRORS as exc:
            logger.error("Decoding %s failed in %s: %s", path, func.__name__, exc, exc_info=True)
            raise CorruptArtifactBody(
                f"Sniff file is broken: {exc}",
                context=str(path),
                suggestion=_CORRUPT_SUGGESTION,
            ) from exc

    return wrapper


def log_performance(func):
    """Log execution duration for ``func`` (plain or coroutine function)."""

    if inspect.iscoroutinefunction(func):

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except BaseException:
                duration = time.perf_counter() - start_time
                logger.info("%s call failed after %.3f seconds", func.__name__, duration)
                raise
            duration = time.perf_counter() - start_time
            logger.info("%s executed in %.3f seconds", func.__name__, duration)
            return result

        return async_wrapper

    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception:  # pragma: no cover - runtime protection
            duration = time.perf_counter() - start_time
            logger.info("%s call failed after %.3f seconds", func.__name__, duration)
            raise
        duration = time.perf_counter() - start_time
        logger.info("%s executed in %.3f seconds", func.__name__, duration)
        return result

    return wrapper
