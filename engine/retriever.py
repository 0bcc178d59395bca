"""
Paginated retrieval over the search backend using search-after cursors.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from config import DEFAULT_SORT_FIELD, settings
from datasources.exceptions import DataSourceError
from engine.exceptions import RetrievalFailed
from engine.models import LogRecord, SearchHit, SearchPage, WatcherExecution
from engine.queries import error_keywords_query, sort_clause, watcher_history_query, with_tiebreaker

log = logging.getLogger(__name__)


def _with_stable_sort(query: Dict[str, Any]) -> Dict[str, Any]:
    sort = query.get("sort")
    if not sort:
        log.warning("search_all: query has no sort, defaulting to %s asc", DEFAULT_SORT_FIELD)
        sort = sort_clause(DEFAULT_SORT_FIELD, "asc")
    return {**query, "sort": with_tiebreaker(sort)}


async def _open_pit(provider: Any, index_pattern: str) -> str:
    try:
        return await provider.open_point_in_time(index_pattern)
    except DataSourceError as exc:
        raise RetrievalFailed(f"could not open point in time on {index_pattern}: {exc}", cause=exc) from exc
    except (KeyError, TypeError) as exc:
        raise RetrievalFailed(f"point in time response from {index_pattern} carries no id", cause=exc) from exc


async def _close_pit(provider: Any, pit_id: str) -> None:
    try:
        await provider.close_point_in_time(pit_id)
    except DataSourceError as exc:
        # the point in time expires on its own after keep_alive
        log.warning("failed to close point in time: %s", exc)


async def search_all(
    provider: Any,
    index_pattern: str,
    query: Dict[str, Any],
    page_size: Optional[int] = None,
) -> List[SearchHit]:
    """Walk every page of ``query`` and return all hits in cursor order.

    Pages are read from one point in time, sorted with a ``_shard_doc``
    tiebreaker so the cursor is unique. A page shorter than ``page_size``
    ends the walk; the backend's total hit count is never consulted. Any
    transport or decode failure raises :class:`RetrievalFailed` and nothing
    accumulated so far is returned.
    """
    if page_size is None:
        page_size = settings.page_size
    if page_size < 1:
        raise ValueError("page_size must be positive")

    query = _with_stable_sort(query)
    hits: List[SearchHit] = []
    cursor: Optional[List[Any]] = None
    pages = 0

    pit_id = await _open_pit(provider, index_pattern)
    try:
        while True:
            try:
                raw = await provider.search(index_pattern, query, size=page_size, search_after=cursor, pit_id=pit_id)
                page = SearchPage.from_response(raw)
            except DataSourceError as exc:
                raise RetrievalFailed(f"search on {index_pattern} failed after {pages} page(s): {exc}", cause=exc) from exc
            except (ValidationError, AttributeError, TypeError) as exc:
                raise RetrievalFailed(f"could not decode page {pages + 1} from {index_pattern}: {exc}", cause=exc) from exc

            pages += 1
            pit_id = page.pit_id or pit_id
            hits.extend(page.hits)
            log.debug("search_all index=%s page=%d hits=%d", index_pattern, pages, len(page.hits))

            if len(page.hits) < page_size:
                break
            cursor = page.hits[-1].sort
            if not cursor:
                raise RetrievalFailed(f"hit {page.hits[-1].id} on {index_pattern} carries no sort cursor")
    finally:
        await _close_pit(provider, pit_id)

    log.info("search_all index=%s pages=%d hits=%d", index_pattern, pages, len(hits))
    return hits


def _decode(hits: Sequence[SearchHit], decoder: Any, index_pattern: str) -> list:
    try:
        return [decoder(hit) for hit in hits]
    except (ValidationError, KeyError, TypeError) as exc:
        raise RetrievalFailed(f"could not decode hit from {index_pattern}: {exc}", cause=exc) from exc


async def fetch_error_logs(
    provider: Any,
    keywords: Sequence[str],
    index_pattern: Optional[str] = None,
    page_size: Optional[int] = None,
) -> List[LogRecord]:
    index_pattern = index_pattern or settings.error_index_pattern
    hits = await search_all(provider, index_pattern, error_keywords_query(keywords), page_size)
    return _decode(hits, SearchHit.to_log_record, index_pattern)


async def fetch_watcher_executions(
    provider: Any,
    index_pattern: Optional[str] = None,
    prefix: Optional[str] = None,
    since: Optional[str] = None,
    page_size: Optional[int] = None,
) -> List[WatcherExecution]:
    index_pattern = index_pattern or settings.watcher_index_pattern
    query = watcher_history_query(
        prefix if prefix is not None else settings.watcher_id_prefix,
        since or settings.watcher_lookback,
    )
    hits = await search_all(provider, index_pattern, query, page_size)
    return _decode(hits, WatcherExecution.from_hit, index_pattern)
