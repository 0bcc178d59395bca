"""
Search DSL builders for error records, watcher history and alert correlation windows.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Any, Dict, Sequence

from config import DEFAULT_SORT_FIELD

CORRELATION_ID_FIELD = "correlationId.keyword"

NON_EMPTY_CORRELATION_ID = (
    "doc['correlationId.keyword'].size() > 0 && doc['correlationId.keyword'].value != ''"
)

# unique per document inside a point in time
SHARD_DOC_TIEBREAKER: Dict[str, Any] = {"_shard_doc": {"order": "asc"}}


def sort_clause(field: str, order: str = "asc") -> list[Dict[str, Any]]:
    return [{field: {"order": order}}]


def with_tiebreaker(sort: Sequence[Any]) -> list:
    if any("_shard_doc" in clause for clause in sort):
        return list(sort)
    return [*sort, SHARD_DOC_TIEBREAKER]


def error_keywords_query(keywords: Sequence[str]) -> Dict[str, Any]:
    return {
        "query": {
            "bool": {
                "should": [{"match_phrase": {"message": k}} for k in keywords],
                "minimum_should_match": 1,
                "filter": [
                    {
                        "script": {
                            "script": {
                                "source": NON_EMPTY_CORRELATION_ID,
                                "lang": "painless",
                            }
                        }
                    }
                ],
            }
        },
        "sort": sort_clause(DEFAULT_SORT_FIELD, "desc"),
    }


def watcher_history_query(prefix: str, since: str) -> Dict[str, Any]:
    return {
        "sort": sort_clause("result.execution_time", "desc"),
        "_source": [
            "watch_id",
            "result.execution_time",
            "result.actions",
            "result.condition",
            "result.status",
        ],
        "query": {
            "bool": {
                "must": [
                    {"term": {"result.condition.met": True}},
                    {"prefix": {"watch_id": prefix}},
                    {"range": {"result.execution_time": {"gte": since}}},
                ]
            }
        },
    }


def correlation_window_query(
    keywords: Sequence[str],
    execution_ms: int,
    window_ms: int,
    size: int = 1,
) -> Dict[str, Any]:
    return {
        "size": size,
        "sort": sort_clause(DEFAULT_SORT_FIELD, "asc") + sort_clause(CORRELATION_ID_FIELD, "asc"),
        "query": {
            "bool": {
                "must": [
                    {"terms": {"message.keyword": list(keywords)}},
                    {
                        "range": {
                            DEFAULT_SORT_FIELD: {
                                "gte": execution_ms - window_ms,
                                "lte": execution_ms + window_ms,
                                "format": "epoch_millis",
                            }
                        }
                    },
                ]
            }
        },
    }
