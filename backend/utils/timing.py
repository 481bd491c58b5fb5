import time
import inspect
import functools
import logging

logger = logging.getLogger("campus_assistant.timing")

def timeit(label: str = ""):
    """
    Decorator to log execution time for a coroutine or plain function.

    Usage:
        @timeit("verify_otp")
        async def verify(...):
            ...
    """

    def _decorate(func):
        name = label or getattr(func, "__qualname__", getattr(func, "__name__", "function"))

        def _log(start: float, failed: bool) -> None:
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            outcome = "failed" if failed else "ok"
            logger.info(f"[timing] {name} {outcome} in {elapsed_ms:.2f} ms")

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def _aw(*args, **kwargs):
                start = time.perf_counter()
                failed = True
                try:
                    result = await func(*args, **kwargs)
                    failed = False
                    return result
                finally:
                    _log(start, failed)

            return _aw

        @functools.wraps(func)
        def _w(*args, **kwargs):
            start = time.perf_counter()
            failed = True
            try:
                result = func(*args, **kwargs)
                failed = False
                return result
            finally:
                _log(start, failed)

        return _w

    return _decorate
