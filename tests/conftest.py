import os
import sys
import pytest

# ensure workspace root is on sys.path so our application packages can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from store.checkpoint import CheckpointStore


def error_source(i, error_message="boom", message="FailedValidating", timestamp="2026-03-01T10:00:00.000Z"):
    return {
        "correlationId": f"corr-{i}",
        "environment": "prd1",
        "httpStatus": 500,
        "message": message,
        "microservice": "validator",
        "errorMessage": error_message,
        "@timestamp": timestamp,
    }


def hits_response(hits, total=None):
    return {"hits": {"total": {"value": total if total is not None else len(hits)}, "hits": hits}}


class PointInTimeSearch:
    """Records the point-in-time lifecycle a paged search goes through."""

    def __init__(self):
        self.opened = []
        self.closed = []

    async def open_point_in_time(self, index):
        self.opened.append(index)
        return f"pit-{len(self.opened)}"

    async def close_point_in_time(self, pit_id):
        self.closed.append(pit_id)


class PagedSearch(PointInTimeSearch):
    """In-memory search backend serving ``count`` error records by search-after cursor."""

    def __init__(self, count, fail_on_call=None):
        super().__init__()
        self.count = count
        self.fail_on_call = fail_on_call
        self.calls = []

    async def search(self, index, query, size, search_after=None, pit_id=None):
        self.calls.append({"index": index, "query": query, "size": size, "search_after": search_after, "pit_id": pit_id})
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            from datasources.exceptions import DataSourceUnavailable
            raise DataSourceUnavailable("backend down")
        start = 0 if search_after is None else search_after[0] + 1
        stop = min(start + size, self.count)
        hits = [
            {"_id": f"log-{i}", "_source": error_source(i), "sort": [i]}
            for i in range(start, stop)
        ]
        # total is deliberately wrong: pagination must not rely on it
        return hits_response(hits, total=10)


@pytest.fixture
def store(tmp_path):
    return CheckpointStore(tmp_path)
