from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from config import ERROR_KEYWORDS, KeywordMapping, Settings, settings as default_settings
from engine.correlation.alerts import AlertCorrelator
from engine.exceptions import PersistenceFailed
from engine.layout.mds import classical_mds, to_coordinates
from engine.models import Coordinate, CorrelatedRecord, LogRecord
from engine.retriever import fetch_error_logs, fetch_watcher_executions
from engine.similarity.distance import ErrorMessageComparable, distance_matrix
from store.checkpoint import CheckpointStore

log = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _decode(raw: Sequence[Any], model: Type[M], name: str) -> List[M]:
    try:
        return [model.model_validate(item) for item in raw]
    except ValidationError as exc:
        raise PersistenceFailed(f"snapshot {name} holds malformed records: {exc}", cause=exc) from exc


def attach_coordinates(records: Sequence[LogRecord | CorrelatedRecord], coords: Sequence[Coordinate]) -> None:
    if len(records) != len(coords):
        raise ValueError(f"{len(coords)} coordinate(s) for {len(records)} record(s)")
    for item, coord in zip(records, coords):
        record = item.record if isinstance(item, CorrelatedRecord) else item
        record.coordinates = coord


async def compute_coordinates(
    records: Sequence[LogRecord | CorrelatedRecord],
    cfg: Optional[Settings] = None,
) -> List[Coordinate]:
    cfg = cfg or default_settings
    comparables = [ErrorMessageComparable(r, mask=cfg.similarity_mask_noise) for r in records]

    log.info("computing distance matrix for %d record(s)...", len(comparables))
    D = await asyncio.to_thread(distance_matrix, comparables, cfg.similarity_workers or None)

    log.info("computing classical mds...")
    coords = await asyncio.to_thread(
        classical_mds, D, cfg.layout_dims, cfg.layout_negative_policy, cfg.layout_eigen_tolerance
    )
    return to_coordinates(coords)


async def analyse_errors(
    provider: Any,
    store: CheckpointStore,
    cfg: Optional[Settings] = None,
    keywords: Sequence[str] = ERROR_KEYWORDS,
) -> List[LogRecord]:
    cfg = cfg or default_settings

    raw = store.load_if_present(cfg.errors_message_output)
    if raw is not None:
        log.info("loading error logs from local checkpoint...")
        records = _decode(raw, LogRecord, cfg.errors_message_output)
    else:
        log.info("fetching error logs from search backend...")
        records = await fetch_error_logs(provider, keywords, cfg.error_index_pattern, cfg.page_size)
        log.info("writing error logs to local checkpoint...")
        store.save(cfg.errors_message_output, records)

    log.info("calculating error similarity...")
    attach_coordinates(records, await compute_coordinates(records, cfg))
    store.save(cfg.errors_coordinates_output, records)
    return records


async def analyse_alerts(
    provider: Any,
    store: CheckpointStore,
    cfg: Optional[Settings] = None,
    mapping: Optional[KeywordMapping] = None,
) -> List[CorrelatedRecord]:
    cfg = cfg or default_settings

    raw = store.load_if_present(cfg.alerts_watcher_output)
    if raw is not None:
        log.info("loading correlated alerts from local checkpoint...")
        records = _decode(raw, CorrelatedRecord, cfg.alerts_watcher_output)
    else:
        log.info("fetching watcher executions from search backend...")
        executions = await fetch_watcher_executions(
            provider,
            index_pattern=cfg.watcher_index_pattern,
            prefix=cfg.watcher_id_prefix,
            since=cfg.watcher_lookback,
            page_size=cfg.page_size,
        )
        log.info("correlating %d watcher execution(s) with error logs...", len(executions))
        correlator = AlertCorrelator(
            provider,
            mapping,
            index_pattern=cfg.error_index_pattern,
            window_seconds=cfg.correlation_window_seconds,
            candidate_size=cfg.correlation_candidate_size,
            max_parallel=cfg.max_parallel(),
            sentinel_environment=cfg.sentinel_environment,
            sentinel_microservice=cfg.sentinel_microservice,
        )
        records = await correlator.correlate(executions)
        log.info("writing correlated alerts to local checkpoint...")
        store.save(cfg.alerts_watcher_output, records)

    log.info("calculating alert similarity...")
    attach_coordinates(records, await compute_coordinates(records, cfg))
    store.save(cfg.alerts_coordinates_output, records)
    return records


def load_errors(store: CheckpointStore, cfg: Optional[Settings] = None) -> Optional[List[LogRecord]]:
    cfg = cfg or default_settings
    raw = store.load_if_present(cfg.errors_coordinates_output)
    return None if raw is None else _decode(raw, LogRecord, cfg.errors_coordinates_output)


def load_alerts(store: CheckpointStore, cfg: Optional[Settings] = None) -> Optional[List[CorrelatedRecord]]:
    cfg = cfg or default_settings
    raw = store.load_if_present(cfg.alerts_coordinates_output)
    return None if raw is None else _decode(raw, CorrelatedRecord, cfg.alerts_coordinates_output)
