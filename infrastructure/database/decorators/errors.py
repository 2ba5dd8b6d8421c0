"""
Persistence Error Translation
=============================

Wraps ops-mixin methods so that any ``sqlite3.Error`` surfaces to services
as :class:`~app.domain.exceptions.PersistenceError`, after being logged
with the operation name. Services never see raw driver exceptions.

Architecture:
    Service -> Repository -> @persistence_guard -> Ops mixin -> sqlite3
"""

from __future__ import annotations

import functools
import logging
import sqlite3
from typing import Any, Callable, TypeVar, cast

from app.domain.exceptions import PersistenceError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def persistence_guard(operation: str) -> Callable[[F], F]:
    """
    Translate ``sqlite3.Error`` raised by the wrapped method into PersistenceError.

    Args:
        operation: Short label used in logs and in the error message
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except sqlite3.Error as exc:
                logger.error("%s failed: %s", operation, exc)
                raise PersistenceError(f"{operation} failed", detail={"operation": operation}) from exc

        return cast(F, wrapper)

    return decorator
