"""
Alert correlation joining watcher executions to the error record that triggered them, searching a symmetric time window around each firing for the first error matching the watch's mapped keywords, and falling back to an explicit sentinel record when no mapping or no match exists.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from config import CANONICAL_TIMESTAMP_FORMAT, KeywordMapping, WATCHER_ERROR_MAPPING, settings
from datasources.exceptions import DataSourceError
from engine.exceptions import CorrelationFailed, TimeParseFailed
from engine.models import (
    CorrelatedRecord,
    CorrelationKind,
    ErrorLogSource,
    LogRecord,
    SearchPage,
    WatcherExecution,
)
from engine.queries import correlation_window_query

log = logging.getLogger(__name__)


def parse_timestamp(value: Any) -> datetime:
    text = str(value or "").strip()
    if not text:
        raise TimeParseFailed("empty timestamp")
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise TimeParseFailed(f"failed to parse time {value!r}: {exc}", cause=exc) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    value = value.astimezone(timezone.utc)
    return f"{value.strftime(CANONICAL_TIMESTAMP_FORMAT)}.{value.microsecond // 1000:03d}Z"


def normalize_timestamp(value: Any) -> str:
    return format_timestamp(parse_timestamp(value))


def epoch_millis(value: datetime) -> int:
    return int(round(value.timestamp() * 1000))


def select_candidate(candidates: Sequence[Any]) -> int:
    """Index of the first candidate with a non-empty error message, else the last one."""
    if not candidates:
        raise ValueError("select_candidate requires at least one candidate")
    for i, candidate in enumerate(candidates):
        if getattr(candidate, "error_message", ""):
            return i
    return len(candidates) - 1


class AlertCorrelator:

    def __init__(
        self,
        provider: Any,
        mapping: Optional[KeywordMapping] = None,
        *,
        index_pattern: Optional[str] = None,
        window_seconds: Optional[float] = None,
        candidate_size: Optional[int] = None,
        max_parallel: Optional[int] = None,
        sentinel_environment: Optional[str] = None,
        sentinel_microservice: Optional[str] = None,
    ):
        self.provider = provider
        self.mapping = WATCHER_ERROR_MAPPING if mapping is None else mapping
        self.index_pattern = index_pattern or settings.error_index_pattern
        self.window_seconds = settings.correlation_window_seconds if window_seconds is None else window_seconds
        self.candidate_size = max(1, candidate_size or settings.correlation_candidate_size)
        self.max_parallel = max(1, max_parallel or settings.max_parallel())
        self.sentinel_environment = sentinel_environment or settings.sentinel_environment
        self.sentinel_microservice = sentinel_microservice or settings.sentinel_microservice

    def keywords_for(self, watch_id: str) -> Tuple[str, ...]:
        return tuple(self.mapping.get(watch_id) or ())

    def sentinel(self, execution: WatcherExecution, executed_at: datetime) -> CorrelatedRecord:
        source = ErrorLogSource(
            correlation_id=execution.id,
            environment=self.sentinel_environment,
            http_status=0,
            microservice=self.sentinel_microservice,
            message=execution.watch_id,
            error_message=execution.watch_id,
            timestamp=format_timestamp(executed_at),
        )
        return CorrelatedRecord(
            kind=CorrelationKind.sentinel,
            watch_id=execution.watch_id,
            execution_id=execution.id,
            record=LogRecord(id=execution.id, source=source),
        )

    async def _candidates(self, execution: WatcherExecution, keywords: Tuple[str, ...], executed_at: datetime) -> SearchPage:
        query = correlation_window_query(
            keywords,
            epoch_millis(executed_at),
            int(round(self.window_seconds * 1000)),
            size=self.candidate_size,
        )
        try:
            raw = await self.provider.search(self.index_pattern, query, size=self.candidate_size)
            return SearchPage.from_response(raw)
        except DataSourceError as exc:
            raise CorrelationFailed(
                f"error search for watch {execution.watch_id} ({execution.id}) failed: {exc}", cause=exc
            ) from exc
        except (ValidationError, AttributeError, TypeError) as exc:
            raise CorrelationFailed(
                f"could not decode error search for watch {execution.watch_id} ({execution.id}): {exc}", cause=exc
            ) from exc

    async def correlate_one(self, execution: WatcherExecution) -> CorrelatedRecord:
        executed_at = parse_timestamp(execution.execution_time)
        keywords = self.keywords_for(execution.watch_id)
        if not keywords:
            return self.sentinel(execution, executed_at)

        page = await self._candidates(execution, keywords, executed_at)
        if not page.hits:
            return self.sentinel(execution, executed_at)

        try:
            sources = [ErrorLogSource.model_validate(hit.source) for hit in page.hits]
        except ValidationError as exc:
            raise CorrelationFailed(f"malformed error record for watch {execution.watch_id}: {exc}", cause=exc) from exc

        idx = select_candidate(sources)
        chosen = sources[idx]
        chosen = chosen.model_copy(update={"timestamp": normalize_timestamp(chosen.timestamp)})
        return CorrelatedRecord(
            kind=CorrelationKind.matched,
            watch_id=execution.watch_id,
            execution_id=execution.id,
            record=LogRecord(id=execution.id, source=chosen, sort=page.hits[idx].sort),
        )

    async def correlate(self, executions: Sequence[WatcherExecution]) -> List[CorrelatedRecord]:
        """Join every execution, returning results in input order.

        The first failing join cancels everything still in flight and its
        error propagates unchanged.
        """
        total = len(executions)
        if total == 0:
            return []

        sem = asyncio.Semaphore(self.max_parallel)
        results: List[Optional[CorrelatedRecord]] = [None] * total
        step = max(1, total // max(1, settings.correlation_progress_steps))
        done = 0

        async def _join(i: int, execution: WatcherExecution) -> None:
            nonlocal done
            async with sem:
                results[i] = await self.correlate_one(execution)
            done += 1
            if done % step == 0 or done == total:
                log.info("correlated %d of %d watcher executions...", done, total)

        tasks = [asyncio.create_task(_join(i, e)) for i, e in enumerate(executions)]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return [r for r in results if r is not None]
