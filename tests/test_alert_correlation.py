"""
Test cases for alert correlation, validating keyword mapping lookups, sentinel fallback, candidate tie-breaking, time-window queries and fail-fast batch behaviour.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import asyncio
from types import SimpleNamespace

import pytest

from config import keyword_mapping
from conftest import error_source, hits_response
from datasources.exceptions import QueryTimeout
from engine.correlation.alerts import (
    AlertCorrelator,
    normalize_timestamp,
    parse_timestamp,
    select_candidate,
)
from engine.exceptions import CorrelationFailed, TimeParseFailed
from engine.models import CorrelationKind, WatcherExecution

MAPPING = keyword_mapping({
    "W_MAPPED": ["FailedSigning", "ErrorCallingBESS"],
    "W_EMPTY": [],
})


def execution(i=1, watch_id="W_MAPPED", at="2026-03-01T10:00:00.000Z"):
    return WatcherExecution(id=f"exec-{i}", watch_id=watch_id, execution_time=at, sort=[i])


class CandidateSearch:
    def __init__(self, hits=None, fail_for=None, delays=None):
        self.hits = hits or []
        self.fail_for = fail_for
        self.delays = delays or {}
        self.calls = []
        self.completed = []
        self.cancelled = []
        self.active = 0
        self.peak = 0

    async def search(self, index, query, size, search_after=None):
        self.calls.append({"index": index, "query": query, "size": size})
        self.active += 1
        self.peak = max(self.peak, self.active)
        gte = query["query"]["bool"]["must"][1]["range"]["@timestamp"]["gte"]
        try:
            await asyncio.sleep(self.delays.get(gte, 0))
            if self.fail_for is not None and gte == self.fail_for:
                raise QueryTimeout("search timed out")
            self.completed.append(gte)
            return hits_response(self.hits)
        except asyncio.CancelledError:
            self.cancelled.append(gte)
            raise
        finally:
            self.active -= 1


def test_select_candidate_prefers_first_non_empty_error_message():
    candidates = [SimpleNamespace(error_message=m) for m in ["", "E2", ""]]
    assert select_candidate(candidates) == 1


def test_select_candidate_falls_back_to_last_when_all_empty():
    candidates = [SimpleNamespace(error_message=m) for m in ["", "", ""]]
    assert select_candidate(candidates) == 2


def test_select_candidate_rejects_empty_list():
    with pytest.raises(ValueError):
        select_candidate([])


def test_timestamps_normalize_to_canonical_utc_millis():
    assert normalize_timestamp("2026-03-01T10:00:00.000Z") == "2026-03-01T10:00:00.000Z"
    assert normalize_timestamp("2026-03-01T11:00:00.123+01:00") == "2026-03-01T10:00:00.123Z"
    assert normalize_timestamp("2026-03-01T10:00:00") == "2026-03-01T10:00:00.000Z"


@pytest.mark.parametrize("value", ["", None, "yesterday", "2026-13-01T10:00:00Z"])
def test_parse_timestamp_rejects_malformed(value):
    with pytest.raises(TimeParseFailed):
        parse_timestamp(value)


@pytest.mark.asyncio
@pytest.mark.parametrize("watch_id", ["W_UNKNOWN", "W_EMPTY"])
async def test_unmapped_watch_yields_sentinel_without_search(watch_id):
    backend = CandidateSearch()
    correlator = AlertCorrelator(backend, MAPPING, max_parallel=2)
    [result] = await correlator.correlate([execution(watch_id=watch_id)])

    assert backend.calls == []
    assert result.kind == CorrelationKind.sentinel
    assert result.is_sentinel
    source = result.record.source
    assert source.message == watch_id
    assert source.error_message == watch_id
    assert source.http_status == 0
    assert source.environment == "prd1"
    assert source.microservice == "unknown"
    assert source.correlation_id == "exec-1"
    assert source.timestamp == "2026-03-01T10:00:00.000Z"
    assert result.record.id == "exec-1"


@pytest.mark.asyncio
async def test_no_hits_yields_sentinel():
    backend = CandidateSearch(hits=[])
    [result] = await AlertCorrelator(backend, MAPPING).correlate([execution()])
    assert len(backend.calls) == 1
    assert result.kind == CorrelationKind.sentinel
    assert result.record.source.message == "W_MAPPED"


@pytest.mark.asyncio
async def test_window_query_targets_error_index_with_symmetric_range():
    backend = CandidateSearch(hits=[])
    await AlertCorrelator(backend, MAPPING, window_seconds=600).correlate([execution()])

    call = backend.calls[0]
    assert call["index"] == "bms-*"
    assert call["size"] == 1
    terms, window = call["query"]["query"]["bool"]["must"]
    assert terms == {"terms": {"message.keyword": ["FailedSigning", "ErrorCallingBESS"]}}
    executed_ms = int(parse_timestamp("2026-03-01T10:00:00.000Z").timestamp() * 1000)
    assert window["range"]["@timestamp"]["gte"] == executed_ms - 600_000
    assert window["range"]["@timestamp"]["lte"] == executed_ms + 600_000
    assert call["query"]["sort"] == [{"@timestamp": {"order": "asc"}}, {"correlationId.keyword": {"order": "asc"}}]


@pytest.mark.asyncio
async def test_match_uses_first_non_empty_error_and_normalizes_timestamp():
    hits = [
        {"_id": "a", "_source": error_source(0, error_message="", timestamp="2026-03-01T09:55:00.000Z"), "sort": [1]},
        {"_id": "b", "_source": error_source(1, error_message="E2", timestamp="2026-03-01T10:56:00.500+01:00"), "sort": [2]},
        {"_id": "c", "_source": error_source(2, error_message="", timestamp="2026-03-01T09:57:00.000Z"), "sort": [3]},
    ]
    backend = CandidateSearch(hits=hits)
    [result] = await AlertCorrelator(backend, MAPPING, candidate_size=3).correlate([execution()])

    assert result.kind == CorrelationKind.matched
    assert result.record.id == "exec-1"
    assert result.record.source.error_message == "E2"
    assert result.record.source.timestamp == "2026-03-01T09:56:00.500Z"
    assert result.record.sort == [2]


@pytest.mark.asyncio
async def test_match_falls_back_to_last_hit_when_all_errors_empty():
    hits = [
        {"_id": c, "_source": error_source(i, error_message=""), "sort": [i]}
        for i, c in enumerate("abc")
    ]
    [result] = await AlertCorrelator(CandidateSearch(hits=hits), MAPPING, candidate_size=3).correlate([execution()])
    assert result.kind == CorrelationKind.matched
    assert result.record.source.correlation_id == "corr-2"


@pytest.mark.asyncio
async def test_correlate_preserves_input_order_under_concurrency():
    base = parse_timestamp("2026-03-01T10:00:00.000Z")
    executions = [
        execution(i, at=f"2026-03-01T10:0{i}:00.000Z") for i in range(5)
    ]
    # later executions finish first
    delays = {
        int(base.timestamp() * 1000) + i * 60_000 - 600_000: 0.05 * (5 - i)
        for i in range(5)
    }
    backend = CandidateSearch(hits=[], delays=delays)
    results = await AlertCorrelator(backend, MAPPING, max_parallel=2).correlate(executions)

    assert [r.execution_id for r in results] == [f"exec-{i}" for i in range(5)]
    assert backend.peak <= 2


@pytest.mark.asyncio
async def test_single_search_failure_fails_whole_batch():
    base = parse_timestamp("2026-03-01T10:00:00.000Z")
    failing_gte = int(base.timestamp() * 1000) + 60_000 - 600_000
    executions = [execution(i, at=f"2026-03-01T10:0{i}:00.000Z") for i in range(3)]
    backend = CandidateSearch(hits=[], fail_for=failing_gte)

    with pytest.raises(CorrelationFailed) as info:
        await AlertCorrelator(backend, MAPPING, max_parallel=3).correlate(executions)
    assert isinstance(info.value.cause, QueryTimeout)


@pytest.mark.asyncio
async def test_first_failure_cancels_in_flight_searches():
    base_ms = int(parse_timestamp("2026-03-01T10:00:00.000Z").timestamp() * 1000)
    gte = [base_ms + i * 60_000 - 600_000 for i in range(3)]
    executions = [execution(i, at=f"2026-03-01T10:0{i}:00.000Z") for i in range(3)]
    # execution 0 fails at once, the others would take far longer than the test
    backend = CandidateSearch(hits=[], fail_for=gte[0], delays={gte[1]: 30, gte[2]: 30})

    with pytest.raises(CorrelationFailed):
        await asyncio.wait_for(
            AlertCorrelator(backend, MAPPING, max_parallel=3).correlate(executions), timeout=5
        )

    assert len(backend.calls) == 3
    assert backend.completed == []
    assert sorted(backend.cancelled) == gte[1:]
    assert backend.active == 0


@pytest.mark.asyncio
async def test_malformed_execution_time_fails_batch():
    with pytest.raises(TimeParseFailed):
        await AlertCorrelator(CandidateSearch(), MAPPING).correlate([execution(at="not-a-time")])


@pytest.mark.asyncio
async def test_correlate_empty_batch():
    assert await AlertCorrelator(CandidateSearch(), MAPPING).correlate([]) == []
