"""
Base connector for search backends holding log and watcher records.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class SearchConnector(ABC):
    health_path: str = ""

    def __init__(
        self,
        base_url: str,
        timeout: int = 30,
        username: Optional[str] = None,
        password: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.base_url = str(base_url).rstrip("/")
        self.timeout = timeout
        self.username = username
        self.password = password
        self.headers = headers or {}

    @property
    def health_url(self) -> str:
        if not self.health_path:
            raise NotImplementedError("connector must define health_path")
        return f"{self.base_url}{self.health_path}"

    def _headers(self) -> Dict[str, str]:
        """Basic header set applied to every outbound request."""
        return {**self.headers, "Content-Type": "application/json"}

    @abstractmethod
    async def search(
        self,
        index: str,
        query: Dict[str, Any],
        size: int,
        search_after: Optional[List[Any]] = None,
        pit_id: Optional[str] = None,
    ) -> Dict[str, Any]: ...

    @abstractmethod
    async def open_point_in_time(self, index: str) -> str: ...

    @abstractmethod
    async def close_point_in_time(self, pit_id: str) -> None: ...

    @abstractmethod
    async def info(self) -> Dict[str, Any]: ...

    @abstractmethod
    async def health(self) -> Dict[str, Any]: ...

    async def aclose(self) -> None:
        return None
