"""
Health check route reporting search backend reachability and snapshot presence.

Copyright (c) 2026 Stefan Kumarasinghe
Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter

from api.routes.common import get_provider, get_store
from config import settings
from datasources.exceptions import DataSourceError

log = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health() -> Dict[str, Any]:
    try:
        cluster = await get_provider().health()
        backend = f"{cluster.get('status', 'unknown')} ({cluster.get('cluster_name', 'unknown')})"
    except DataSourceError as exc:
        log.warning("search backend unreachable: %s", exc)
        backend = f"failed: {exc}"
    store = get_store()
    return {
        "status": "ok",
        "search_backend": backend,
        "snapshots": {
            "errors": store.exists(settings.errors_coordinates_output),
            "alerts": store.exists(settings.alerts_coordinates_output),
        },
    }
