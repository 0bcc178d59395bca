"""
Data source settings for the search backend holding log and watcher records.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings
from config import (
    SEARCH_BACKEND_ELASTICSEARCH,
    ALERTMAP_SEARCH_BACKEND,
    ALERTMAP_SEARCH_URL,
    ALERTMAP_SEARCH_USERNAME,
    ALERTMAP_SEARCH_PASSWORD,
    ALERTMAP_SEARCH_TIMEOUT,
    ALERTMAP_SEARCH_RETRY_ATTEMPTS,
)

class DataSourceSettings(BaseSettings):
    search_backend: str = ALERTMAP_SEARCH_BACKEND
    search_url: str = ALERTMAP_SEARCH_URL
    search_username: Optional[str] = ALERTMAP_SEARCH_USERNAME or None
    search_password: Optional[str] = ALERTMAP_SEARCH_PASSWORD or None
    search_timeout: int = ALERTMAP_SEARCH_TIMEOUT
    search_retry_attempts: int = ALERTMAP_SEARCH_RETRY_ATTEMPTS
    search_retry_delay: float = 1.0
    search_pit_keep_alive: str = "1m"

    @field_validator("search_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        return str(v).rstrip("/") if v is not None else v

    @field_validator("search_backend", mode="before")
    @classmethod
    def validate_search_backend(cls, v: str) -> str:
        value = str(v or "").strip().lower()
        if value not in {SEARCH_BACKEND_ELASTICSEARCH}:
            raise ValueError(f"Unsupported search backend: {value!r}")
        return value

    model_config = {"env_prefix": "ALERTMAP_", "extra": "ignore"}
