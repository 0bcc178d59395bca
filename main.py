"""
Entry point for AlertMap: batch analysis commands and the snapshot API server.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from api.routes import router
from api.routes.common import close_providers, get_provider, get_store
from config import settings
from datasources.exceptions import DataSourceError
from engine import pipeline
from engine.exceptions import AlertMapError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    stream=sys.stdout,
)
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    try:
        yield
    finally:
        await close_providers()


app = FastAPI(
    title="AlertMap",
    description="Correlates watcher alerts with error logs and lays out error similarity in 2-D.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router, prefix="/api/v1")


@app.get("/api/v1/ready", tags=["health"], summary="Snapshot readiness check")
async def ready() -> JSONResponse:
    store = get_store()
    snapshots = {
        "errors": store.exists(settings.errors_coordinates_output),
        "alerts": store.exists(settings.alerts_coordinates_output),
    }
    ok = any(snapshots.values())
    return JSONResponse(status_code=200 if ok else 503, content={"ready": ok, "snapshots": snapshots})


async def _run(command: str) -> int:
    provider = get_provider()
    try:
        if command == "errors":
            records = await pipeline.analyse_errors(provider, get_store(), settings)
            log.info("error analysis complete: %d record(s)", len(records))
        elif command == "alerts":
            records = await pipeline.analyse_alerts(provider, get_store(), settings)
            sentinels = sum(1 for r in records if r.is_sentinel)
            log.info("alert analysis complete: %d record(s), %d without a matching error", len(records), sentinels)
        elif command == "check":
            info = await provider.info()
            log.info("search backend reachable: %s", info.get("version", {}).get("number", "unknown"))
    except (AlertMapError, DataSourceError) as exc:
        log.error("%s analysis failed: %s: %s", command, type(exc).__name__, exc)
        return 1
    finally:
        await close_providers()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="alertmap", description=app.description)
    parser.add_argument("command", choices=["errors", "alerts", "check", "serve"])
    args = parser.parse_args(argv)

    if args.command != "serve":
        return asyncio.run(_run(args.command))

    uvicorn_kwargs = {
        "host": settings.api_host,
        "port": settings.api_port,
        "log_level": "info",
        "access_log": True,
    }
    if settings.ssl_certfile and settings.ssl_keyfile:
        uvicorn_kwargs["ssl_certfile"] = settings.ssl_certfile
        uvicorn_kwargs["ssl_keyfile"] = settings.ssl_keyfile

    uvicorn.run("main:app", **uvicorn_kwargs)
    return 0


if __name__ == "__main__":
    sys.exit(main())
