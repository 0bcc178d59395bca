"""
Tests for the Elasticsearch connector request shaping and transport retry.
"""

from __future__ import annotations

import pytest

from connectors.elasticsearch import ElasticsearchConnector
from datasources.exceptions import DataSourceUnavailable, InvalidQuery


def test_body_sets_size_and_cursor_without_mutating_query():
    query = {"query": {"match_all": {}}, "sort": [{"@timestamp": {"order": "asc"}}]}
    body = ElasticsearchConnector._body(query, 1000, [42, "x"])
    assert body["size"] == 1000
    assert body["search_after"] == [42, "x"]
    assert "size" not in query and "search_after" not in query


def test_body_omits_cursor_on_first_page():
    body = ElasticsearchConnector._body({"search_after": [1]}, 10, None)
    assert "search_after" not in body


@pytest.mark.asyncio
async def test_search_posts_to_index_with_auth(monkeypatch):
    captured = {}

    async def fake_request_json(method, url, body=None, headers=None, auth=None, timeout=30, **_):
        captured.update(method=method, url=url, body=body, headers=headers, auth=auth, timeout=timeout)
        return {"hits": {"hits": []}}

    monkeypatch.setattr("connectors.elasticsearch.request_json", fake_request_json)
    conn = ElasticsearchConnector("http://es:9200", timeout=7, username="elastic", password="pw")

    result = await conn.search("bms-*", {"query": {"match_all": {}}}, size=5, search_after=[3])

    assert result == {"hits": {"hits": []}}
    assert captured["method"] == "POST"
    assert captured["url"] == "http://es:9200/bms-*/_search"
    assert captured["body"] == {"query": {"match_all": {}}, "size": 5, "search_after": [3]}
    assert captured["auth"] == ("elastic", "pw")
    assert captured["timeout"] == 7
    assert captured["headers"]["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_search_retries_unavailable_then_succeeds(monkeypatch):
    calls = []

    async def flaky(method, url, **_):
        calls.append(url)
        if len(calls) < 3:
            raise DataSourceUnavailable("Cannot reach search backend")
        return {"hits": {"hits": []}}

    monkeypatch.setattr("connectors.elasticsearch.request_json", flaky)
    conn = ElasticsearchConnector("http://es:9200", retry_attempts=3, retry_delay=0.0)

    assert await conn.search("bms-*", {}, size=1) == {"hits": {"hits": []}}
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_search_invalid_query_is_not_retried(monkeypatch):
    calls = []

    async def rejecting(method, url, **_):
        calls.append(url)
        raise InvalidQuery("Search on bms-* failed [400]")

    monkeypatch.setattr("connectors.elasticsearch.request_json", rejecting)
    conn = ElasticsearchConnector("http://es:9200", retry_attempts=4, retry_delay=0.0)

    with pytest.raises(InvalidQuery):
        await conn.search("bms-*", {}, size=1)
    assert len(calls) == 1


def test_connector_strips_trailing_slash_from_base_url():
    conn = ElasticsearchConnector("http://es:9200/")
    assert conn.base_url == "http://es:9200"
    assert conn.health_url == "http://es:9200/_cluster/health"


@pytest.mark.asyncio
async def test_search_inside_point_in_time_drops_index_from_path(monkeypatch):
    captured = {}

    async def fake_request_json(method, url, body=None, **_):
        captured.update(method=method, url=url, body=body)
        return {"pit_id": "abc", "hits": {"hits": []}}

    monkeypatch.setattr("connectors.elasticsearch.request_json", fake_request_json)
    conn = ElasticsearchConnector("http://es:9200", pit_keep_alive="2m")

    await conn.search("bms-*", {"sort": []}, size=3, search_after=[1, 7], pit_id="abc")

    assert captured["url"] == "http://es:9200/_search"
    assert captured["body"] == {"sort": [], "size": 3, "search_after": [1, 7], "pit": {"id": "abc", "keep_alive": "2m"}}


@pytest.mark.asyncio
async def test_point_in_time_lifecycle(monkeypatch):
    sent = []

    async def fake_request_json(method, url, body=None, **_):
        sent.append((method, url, body))
        return {"id": "pit-xyz"} if method == "POST" else {"succeeded": True}

    monkeypatch.setattr("connectors.elasticsearch.request_json", fake_request_json)
    conn = ElasticsearchConnector("http://es:9200", pit_keep_alive="1m")

    pit_id = await conn.open_point_in_time(".watcher-history-*")
    await conn.close_point_in_time(pit_id)

    assert pit_id == "pit-xyz"
    assert sent == [
        ("POST", "http://es:9200/.watcher-history-*/_pit?keep_alive=1m", None),
        ("DELETE", "http://es:9200/_pit", {"id": "pit-xyz"}),
    ]


@pytest.mark.asyncio
async def test_health_reads_cluster_health(monkeypatch):
    urls = []

    async def fake_request_json(method, url, **_):
        urls.append((method, url))
        return {"cluster_name": "logging", "status": "green"}

    monkeypatch.setattr("connectors.elasticsearch.request_json", fake_request_json)
    conn = ElasticsearchConnector("http://es:9200")

    assert (await conn.health())["status"] == "green"
    assert urls == [("GET", "http://es:9200/_cluster/health")]
