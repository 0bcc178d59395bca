"""
Shared dependencies for API route modules.

Keeps a single search provider and snapshot store per process so route
handlers stay thin.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Optional

from config import settings
from datasources.data_config import DataSourceSettings
from datasources.provider import DataSourceProvider
from store.checkpoint import CheckpointStore

_provider: Optional[DataSourceProvider] = None


def get_provider() -> DataSourceProvider:
    global _provider
    if _provider is None:
        _provider = DataSourceProvider(settings=DataSourceSettings())
    return _provider


def get_store() -> CheckpointStore:
    return CheckpointStore(settings.output_dir)


async def close_providers() -> None:
    global _provider
    provider, _provider = _provider, None
    if provider is not None:
        await provider.aclose()
