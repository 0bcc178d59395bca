"""
Correlation of watcher alert firings with the error records that caused them.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from engine.correlation.alerts import AlertCorrelator, normalize_timestamp, parse_timestamp, select_candidate

__all__ = ["AlertCorrelator", "normalize_timestamp", "parse_timestamp", "select_candidate"]
