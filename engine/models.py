"""
Record models shared by the retriever, correlator, layout pipeline and API.

Field aliases follow the search backend's wire layout (``_id``, ``_source``,
``@timestamp`` and the camel-cased log fields), so a hit decodes straight into
a model and a snapshot written with ``by_alias=True`` reads back unchanged.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer


def _coerce(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _coerce(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_coerce(v) for v in obj]
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    return obj


class NpModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    @model_serializer(mode="wrap")
    def _serialize(self, handler: Any) -> Any:
        return _coerce(handler(self))


class Coordinate(NpModel):

    x: float
    y: float


class ErrorLogSource(NpModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    correlation_id: str = Field(default="", alias="correlationId")
    tcr: str = ""
    environment: str = ""
    http_status: int = Field(default=0, alias="httpStatus")
    message: str = ""
    microservice: str = ""
    error_message: str = Field(default="", alias="errorMessage")
    timestamp: str = Field(default="", alias="@timestamp")

    @field_validator("correlation_id", "tcr", "environment", "message", "microservice", "error_message", "timestamp", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("http_status", mode="before")
    @classmethod
    def _none_to_zero(cls, v: Any) -> Any:
        return 0 if v is None or v == "" else v


class LogRecord(NpModel):

    id: str = Field(alias="_id")
    source: ErrorLogSource = Field(alias="_source")
    sort: List[Any] = Field(default_factory=list)
    coordinates: Optional[Coordinate] = None


class WatcherExecution(NpModel):

    id: str = Field(alias="_id")
    watch_id: str
    execution_time: str
    sort: List[Any] = Field(default_factory=list)

    @classmethod
    def from_hit(cls, hit: "SearchHit") -> "WatcherExecution":
        result = hit.source.get("result") or {}
        return cls(
            id=hit.id,
            watch_id=hit.source["watch_id"],
            execution_time=result["execution_time"],
            sort=hit.sort,
        )


class CorrelationKind(str, Enum):
    matched = "matched"
    sentinel = "sentinel"


class CorrelatedRecord(NpModel):

    kind: CorrelationKind
    watch_id: str
    execution_id: str
    record: LogRecord

    @property
    def is_sentinel(self) -> bool:
        return self.kind == CorrelationKind.sentinel


class SearchHit(NpModel):

    id: str = Field(alias="_id")
    source: Dict[str, Any] = Field(default_factory=dict, alias="_source")
    sort: List[Any] = Field(default_factory=list)

    def to_log_record(self) -> LogRecord:
        return LogRecord(id=self.id, source=ErrorLogSource.model_validate(self.source), sort=self.sort)


class SearchPage(NpModel):

    hits: List[SearchHit] = Field(default_factory=list)
    total: Optional[int] = None
    pit_id: Optional[str] = None

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> "SearchPage":
        outer = response.get("hits") or {}
        total = outer.get("total")
        if isinstance(total, dict):
            total = total.get("value")
        return cls(
            hits=[SearchHit.model_validate(h) for h in outer.get("hits") or []],
            total=total,
            pit_id=response.get("pit_id"),
        )
