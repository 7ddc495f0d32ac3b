"""
Helper methods for common logging patterns.

Decorators and utility functions for entry/exit logging and structured
error logging.
"""

import functools
import inspect
import logging
import time
import traceback
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union, cast

from stackshift.logging.config import get_logger

F = TypeVar("F", bound=Callable[..., Any])


def _format_value(value: Any) -> Any:
    return value if isinstance(value, (int, float, str, bool)) else repr(value)


def log_entry_exit(
    logger: Optional[logging.Logger] = None,
    log_args: bool = False,
    log_result: bool = False,
    entry_level: int = logging.DEBUG,
    exit_level: int = logging.DEBUG,
    error_level: int = logging.ERROR,
) -> Callable[[F], F]:
    """
    Decorator to log function entry and exit.

    Works for both plain functions and coroutine functions.

    Args:
        logger: Logger to use (if None, get logger based on module name)
        log_args: Whether to log function arguments
        log_result: Whether to log function return value
        entry_level: Log level for entry messages
        exit_level: Log level for exit messages
        error_level: Log level for error messages

    Returns:
        Decorated function with entry/exit logging
    """

    def decorator(func: F) -> F:
        log = logger or get_logger(func.__module__)
        func_name = func.__qualname__

        def _entry_message(args: tuple, kwargs: dict) -> str:
            entry_msg = f"Entering {func_name}"
            if log_args and (args or kwargs):
                arg_strs: List[str] = []
                param_names = list(inspect.signature(func).parameters.keys())
                for i, arg in enumerate(args):
                    if i < len(param_names):
                        arg_strs.append(f"{param_names[i]}={_format_value(arg)}")
                    else:
                        arg_strs.append(f"{_format_value(arg)}")
                for name, value in kwargs.items():
                    arg_strs.append(f"{name}={_format_value(value)}")
                entry_msg += f" with args: {', '.join(arg_strs)}"
            return entry_msg

        def _exit_message(result: Any, elapsed: float) -> str:
            exit_msg = f"Exiting {func_name} after {elapsed:.3f}s"
            if log_result:
                result_str = _format_value(result)
                # Truncate very long result strings
                if isinstance(result_str, str) and len(result_str) > 1000:
                    result_str = result_str[:997] + "..."
                exit_msg += f" with result: {result_str}"
            return exit_msg

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                log.log(entry_level, _entry_message(args, kwargs))
                start_time = time.time()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    elapsed = time.time() - start_time
                    log.log(
                        error_level, f"Error in {func_name} after {elapsed:.3f}s: {e}"
                    )
                    raise
                log.log(exit_level, _exit_message(result, time.time() - start_time))
                return result

            return cast(F, async_wrapper)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            log.log(entry_level, _entry_message(args, kwargs))
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = time.time() - start_time
                log.log(error_level, f"Error in {func_name} after {elapsed:.3f}s: {e}")
                raise
            log.log(exit_level, _exit_message(result, time.time() - start_time))
            return result

        return cast(F, wrapper)

    return decorator


def log_error(
    exception: Union[BaseException, str],
    logger: Optional[logging.Logger] = None,
    level: int = logging.ERROR,
    include_traceback: bool = True,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log an exception or error message with consistent formatting.

    Args:
        exception: Exception object or error message string
        logger: Logger to use (defaults to logger for calling module)
        level: Log level to use
        include_traceback: Whether to include traceback information
        extra: Extra contextual information to include
    """
    frame = inspect.currentframe()
    if frame and frame.f_back:
        module = inspect.getmodule(frame.f_back)
        module_name = module.__name__ if module else "__main__"
    else:
        module_name = "__main__"

    log = logger or get_logger(module_name)

    if isinstance(exception, BaseException):
        error_msg = f"{exception.__class__.__name__}: {str(exception)}"
    else:
        error_msg = str(exception)

    if (
        include_traceback
        and isinstance(exception, BaseException)
        and exception.__traceback__ is not None
    ):
        tb_str = "".join(
            traceback.format_exception(
                type(exception), exception, exception.__traceback__
            )
        )
        error_msg += f"\n{tb_str}"

    log.log(level, error_msg, extra=extra)
