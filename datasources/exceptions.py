"""
Transport errors raised by search connectors.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import Optional


class DataSourceError(Exception):
    pass


class DataSourceUnavailable(DataSourceError):
    """The search backend could not be reached."""


class QueryTimeout(DataSourceError):
    pass


class InvalidQuery(DataSourceError):
    """The backend rejected the request or answered with something other than JSON."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
