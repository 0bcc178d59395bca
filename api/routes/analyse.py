from __future__ import annotations

import asyncio

from fastapi import APIRouter

from api.responses import AnalysisSummary
from api.routes.common import get_provider, get_store
from api.routes.exception import handle_exceptions
from config import settings
from engine import pipeline

router = APIRouter(tags=["Analyse"])

# one batch run at a time; runs share checkpoint files
_run_lock = asyncio.Lock()


@router.post("/analyse/errors", response_model=AnalysisSummary)
@handle_exceptions
async def analyse_errors() -> AnalysisSummary:
    async with _run_lock:
        records = await pipeline.analyse_errors(get_provider(), get_store(), settings)
    return AnalysisSummary(records=len(records), output=settings.errors_coordinates_output)


@router.post("/analyse/alerts", response_model=AnalysisSummary)
@handle_exceptions
async def analyse_alerts() -> AnalysisSummary:
    async with _run_lock:
        records = await pipeline.analyse_alerts(get_provider(), get_store(), settings)
    return AnalysisSummary(
        records=len(records),
        sentinels=sum(1 for r in records if r.is_sentinel),
        output=settings.alerts_coordinates_output,
    )
