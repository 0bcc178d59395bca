"""
Provider wrapping the configured search connector used by the engine.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import Any, Dict, List, Optional
from .data_config import DataSourceSettings
from .factory import DataSourceFactory

class DataSourceProvider:
    def __init__(self, settings: DataSourceSettings):
        self.settings = settings
        self.search_backend = DataSourceFactory.create_search(settings)

    async def search(
        self,
        index: str,
        query: Dict[str, Any],
        size: int,
        search_after: Optional[List[Any]] = None,
        pit_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self.search_backend.search(index, query, size=size, search_after=search_after, pit_id=pit_id)

    async def open_point_in_time(self, index: str) -> str:
        return await self.search_backend.open_point_in_time(index)

    async def close_point_in_time(self, pit_id: str) -> None:
        await self.search_backend.close_point_in_time(pit_id)

    async def info(self) -> Dict[str, Any]:
        return await self.search_backend.info()

    async def health(self) -> Dict[str, Any]:
        return await self.search_backend.health()

    async def aclose(self) -> None:
        await self.search_backend.aclose()
