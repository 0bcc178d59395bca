"""
Error taxonomy for the correlation, similarity and layout engine.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Optional


class AlertMapError(Exception):

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class RetrievalFailed(AlertMapError):
    pass


class TimeParseFailed(AlertMapError):
    pass


class CorrelationFailed(AlertMapError):
    pass


class SimilarityPrecondition(AlertMapError):
    pass


class DegenerateLayout(AlertMapError):

    def __init__(self, message: str, axes: tuple = (), eigenvalues: tuple = ()):
        super().__init__(message)
        self.axes = axes
        self.eigenvalues = eigenvalues


class LayoutFailed(AlertMapError):
    pass


class PersistenceFailed(AlertMapError):
    pass
