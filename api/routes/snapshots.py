from __future__ import annotations

from typing import List

from fastapi import APIRouter, HTTPException

from api.responses import MessageGroup
from api.routes.common import get_store
from api.routes.exception import handle_exceptions
from engine.logs import group_by_message
from engine.models import CorrelatedRecord, LogRecord
from engine.pipeline import load_alerts, load_errors

router = APIRouter(tags=["Snapshots"])


def _not_ready(kind: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"no {kind} coordinate snapshot yet; run the {kind} analysis first")


@router.get("/errors", response_model=List[LogRecord], response_model_by_alias=True)
@handle_exceptions
async def errors() -> List[LogRecord]:
    records = load_errors(get_store())
    if records is None:
        raise _not_ready("errors")
    return records


@router.get("/errors/by-message", response_model=List[MessageGroup], response_model_by_alias=True)
@handle_exceptions
async def errors_by_message() -> List[MessageGroup]:
    records = load_errors(get_store())
    if records is None:
        raise _not_ready("errors")
    groups = group_by_message(records)
    return sorted(
        (MessageGroup(message=m, count=len(rs), records=rs) for m, rs in groups.items()),
        key=lambda g: g.count,
        reverse=True,
    )


@router.get("/alerts", response_model=List[CorrelatedRecord], response_model_by_alias=True)
@handle_exceptions
async def alerts() -> List[CorrelatedRecord]:
    records = load_alerts(get_store())
    if records is None:
        raise _not_ready("alerts")
    return records
