from __future__ import annotations

import re
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, TypeVar

from engine.models import CorrelatedRecord, LogRecord

_NOISE = re.compile(
    r"\b(?:"
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
    r"|\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})?"
    r"|(?:\d{1,3}\.){3}\d{1,3}(?::\d+)?"
    r"|\d+\.?\d*(?:ms|s|m|h|us|ns)\b"
    r"|0x[0-9a-f]+"
    r"|\b\d{4,}\b"
    r")\b",
    re.I,
)

R = TypeVar("R", LogRecord, CorrelatedRecord)


def mask_noise(line: str, limit: Optional[int] = None) -> str:
    """Replace volatile tokens (ids, timestamps, addresses, durations) with ``<_>``."""
    masked = re.sub(r"\s+", " ", _NOISE.sub("<_>", line or "")).strip()
    return masked[:limit] if limit else masked


def _record(item: LogRecord | CorrelatedRecord) -> LogRecord:
    return item.record if isinstance(item, CorrelatedRecord) else item


def group_by_message(records: Iterable[R]) -> Dict[str, List[R]]:
    groups: Dict[str, List[R]] = defaultdict(list)
    for item in records:
        groups[_record(item).source.message].append(item)
    return dict(groups)
