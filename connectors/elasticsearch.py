from typing import Any, Dict, List, Optional
from urllib.parse import quote

from datasources.base import SearchConnector
from datasources.helpers import basic_auth, request_json
from datasources.retry import retry

HEALTH_PATH = "/_cluster/health"


class ElasticsearchConnector(SearchConnector):
    health_path = HEALTH_PATH

    def __init__(
        self,
        base_url: str,
        timeout: int = 30,
        username: Optional[str] = None,
        password: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
        pit_keep_alive: str = "1m",
    ):
        super().__init__(base_url, timeout=timeout, username=username, password=password, headers=headers)
        self.retry_attempts = max(1, int(retry_attempts))
        self.retry_delay = retry_delay
        self.pit_keep_alive = pit_keep_alive

    @staticmethod
    def _body(
        query: Dict[str, Any],
        size: int,
        search_after: Optional[List[Any]],
        pit: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        body = dict(query)
        body["size"] = size
        if search_after is not None:
            body["search_after"] = list(search_after)
        else:
            body.pop("search_after", None)
        if pit is not None:
            body["pit"] = pit
        return body

    async def _request(self, method: str, url: str, body: Optional[Dict[str, Any]], what: str) -> Dict[str, Any]:
        @retry(attempts=self.retry_attempts, delay=self.retry_delay)
        async def _once() -> Dict[str, Any]:
            return await request_json(
                method,
                url,
                body=body,
                headers=self._headers(),
                auth=basic_auth(self.username, self.password),
                timeout=self.timeout,
                invalid_msg=f"{what} failed",
                timeout_msg=f"{what} timed out",
                unavailable_msg="Cannot reach search backend at",
            )

        return await _once()

    async def search(
        self,
        index: str,
        query: Dict[str, Any],
        size: int,
        search_after: Optional[List[Any]] = None,
        pit_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        # a point in time already names its indices; the path must not repeat them
        if pit_id:
            url = f"{self.base_url}/_search"
            body = self._body(query, size, search_after, {"id": pit_id, "keep_alive": self.pit_keep_alive})
        else:
            url = f"{self.base_url}/{index}/_search"
            body = self._body(query, size, search_after)
        return await self._request("POST", url, body, f"Search on {index}")

    async def open_point_in_time(self, index: str) -> str:
        url = f"{self.base_url}/{index}/_pit?keep_alive={quote(self.pit_keep_alive)}"
        resp = await self._request("POST", url, None, f"Opening point in time on {index}")
        return resp["id"]

    async def close_point_in_time(self, pit_id: str) -> None:
        await request_json(
            "DELETE",
            f"{self.base_url}/_pit",
            body={"id": pit_id},
            headers=self._headers(),
            auth=basic_auth(self.username, self.password),
            timeout=self.timeout,
            invalid_msg="Closing point in time failed",
            timeout_msg="Closing point in time timed out",
            unavailable_msg="Cannot reach search backend at",
        )

    async def info(self) -> Dict[str, Any]:
        return await request_json(
            "GET",
            f"{self.base_url}/",
            headers=self._headers(),
            auth=basic_auth(self.username, self.password),
            timeout=self.timeout,
            invalid_msg="Search backend info request failed",
            timeout_msg="Search backend info request timed out",
            unavailable_msg="Cannot reach search backend at",
        )

    async def health(self) -> Dict[str, Any]:
        return await request_json(
            "GET",
            self.health_url,
            headers=self._headers(),
            auth=basic_auth(self.username, self.password),
            timeout=self.timeout,
            invalid_msg="Search backend health request failed",
            timeout_msg="Search backend health request timed out",
            unavailable_msg="Cannot reach search backend at",
        )
