"""Base collector class and error containment decorator."""

from abc import ABC
from typing import Any
import logging
from functools import wraps


class BaseCollector(ABC):
    """Base class for components that read from the vSphere service content."""

    def __init__(self, content: Any, logger: logging.Logger):
        """
        Initialize base collector.

        Args:
            content: vim.ServiceContent of the connected service instance
            logger: Logger instance
        """
        self.content = content
        self.logger = logger.getChild(self.__class__.__name__)


def safe_collect(default_factory=list):
    """
    Decorator to contain failures of one async collection step.

    The wrapped coroutine's exception is logged with its traceback and the
    step yields default_factory() instead, so sibling steps keep running.

    Args:
        default_factory: Callable producing the fallback result

    Returns:
        Decorator for async methods of objects exposing self.logger
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except Exception as e:
                self.logger.warning(f"{func.__name__} failed: {e}", exc_info=True)
                return default_factory()
        return wrapper
    return decorator
