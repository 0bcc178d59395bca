"""
Pairwise similarity between error messages using length-normalised Levenshtein distance, and a thread-parallel N x N distance matrix in which every unordered pair is assigned to exactly one row partition up front.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any, List, Optional, Protocol, Sequence

import numpy as np
from rapidfuzz.distance import Levenshtein

from config import settings
from engine.exceptions import SimilarityPrecondition
from engine.logs.patterns import mask_noise
from engine.models import CorrelatedRecord, LogRecord

log = logging.getLogger(__name__)

# row partitions queued per thread; queued partitions are dropped on the first failure
TASKS_PER_WORKER = 4


class Comparable(Protocol):
    def metric(self) -> str: ...


class ErrorMessageComparable:

    def __init__(self, item: LogRecord | CorrelatedRecord, mask: Optional[bool] = None):
        self.record = item.record if isinstance(item, CorrelatedRecord) else item
        self.mask = settings.similarity_mask_noise if mask is None else mask

    def metric(self) -> str:
        message = self.record.source.error_message
        return mask_noise(message) if self.mask else message


def levenshtein(a: str, b: str) -> int:
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    if a == b:
        return 1.0
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein(a, b) / longest


def _metric(item: Any, index: int) -> str:
    fn = getattr(item, "metric", None)
    if not callable(fn):
        raise SimilarityPrecondition(f"item {index} ({type(item).__name__}) has no metric()")
    value = fn()
    if not isinstance(value, str):
        raise SimilarityPrecondition(f"item {index} metric must be str, got {type(value).__name__}")
    return value


def partition_rows(n: int, parts: int) -> List[List[int]]:
    """Interleave rows across partitions so the upper-triangle work is balanced.

    Row ``i`` owns the pairs ``(i, j)`` for ``j > i``; the partitions are
    disjoint, so every unordered pair belongs to exactly one partition.
    """
    parts = max(1, min(parts, n))
    return [list(range(p, n, parts)) for p in range(parts)]


def distance_matrix(items: Sequence[Comparable], workers: Optional[int] = None) -> np.ndarray:
    metrics = [_metric(item, i) for i, item in enumerate(items)]
    n = len(metrics)
    dist = np.zeros((n, n), dtype=float)
    if n < 2:
        return dist

    if workers is None:
        workers = settings.similarity_workers or os.cpu_count() or 1
    workers = max(1, min(workers, n))
    partitions = partition_rows(n, workers * TASKS_PER_WORKER)

    lock = threading.Lock()
    step = max(1, n // 10)
    compared = 0

    def _fill(rows: List[int]) -> None:
        nonlocal compared
        for i in rows:
            a = metrics[i]
            for j in range(i + 1, n):
                d = 1.0 - similarity(a, metrics[j])
                dist[i, j] = d
                dist[j, i] = d
            with lock:
                compared += 1
                if compared % step == 0:
                    log.info("%d of %d records compared...", compared, n)

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="similarity") as pool:
        futures = [pool.submit(_fill, rows) for rows in partitions]
        finished, pending = wait(futures, return_when=FIRST_EXCEPTION)
        for future in pending:
            future.cancel()
        for future in finished:
            future.result()

    return dist
