"""
Centralized exception handling decorator for API route functions.

The :func:`handle_exceptions` decorator wraps an endpoint handler and turns
engine failures into :class:`fastapi.HTTPException` responses. Search
transport and retrieval failures become ``502``, missing or unreadable
snapshots ``500`` with the failing stage named, and anything else ``500``.
HTTPExceptions raised by the handler are propagated untouched.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar, cast

from fastapi import HTTPException

from datasources.exceptions import DataSourceError
from engine.exceptions import AlertMapError, CorrelationFailed, RetrievalFailed

log = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])

_UPSTREAM_ERRORS = (DataSourceError, RetrievalFailed, CorrelationFailed)


def status_for(exc: BaseException) -> int:
    if isinstance(exc, _UPSTREAM_ERRORS):
        return 502
    return 500


def handle_exceptions(func: F) -> F:
    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)
        except HTTPException:
            raise
        except AlertMapError as exc:
            log.error("%s failed: %s: %s", func.__name__, type(exc).__name__, exc)
            raise HTTPException(status_code=status_for(exc), detail=f"{type(exc).__name__}: {exc}") from exc
        except Exception as exc:
            log.exception("%s failed", func.__name__)
            raise HTTPException(status_code=status_for(exc), detail=str(exc)) from exc

    return cast(F, wrapper)
