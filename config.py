"""
Constants and configuration for AlertMap.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import os
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from pydantic_settings import BaseSettings


SEARCH_BACKEND_ELASTICSEARCH = "elasticsearch"

ALERTMAP_SEARCH_BACKEND = os.getenv("ALERTMAP_SEARCH_BACKEND", SEARCH_BACKEND_ELASTICSEARCH).lower()
ALERTMAP_SEARCH_URL = os.getenv("ALERTMAP_SEARCH_URL", "http://elasticsearch:9200").rstrip("/")
ALERTMAP_SEARCH_USERNAME = os.getenv("ALERTMAP_SEARCH_USERNAME", "")
ALERTMAP_SEARCH_PASSWORD = os.getenv("ALERTMAP_SEARCH_PASSWORD", "")
ALERTMAP_SEARCH_TIMEOUT = int(os.getenv("ALERTMAP_SEARCH_TIMEOUT", "30"))
ALERTMAP_SEARCH_RETRY_ATTEMPTS = int(os.getenv("ALERTMAP_SEARCH_RETRY_ATTEMPTS", "3"))

ALERTMAP_OUTPUT_DIR = os.getenv("ALERTMAP_OUTPUT_DIR", ".")

DEFAULT_PAGE_SIZE = 1000
DEFAULT_SORT_FIELD = "@timestamp"
CANONICAL_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"

ERROR_INDEX_PATTERN = "bms-*"
WATCHER_INDEX_PATTERN = ".watcher-history-*"

ERRORS_MESSAGE_OUTPUT = "errors-message-output.json"
ERRORS_COORDINATES_OUTPUT = "errors-coordinate-output.json"
ALERTS_WATCHER_OUTPUT = "alerts-watcher-output.json"
ALERTS_COORDINATES_OUTPUT = "alerts-coordinate-output.json"

# error codes searched for when building the error-message layout
ERROR_KEYWORDS: Tuple[str, ...] = (
    "ErrorCallingBMSComponent",
    "ErrorCallingBSG",
    "ErrorCallingDataPlatform",
    "ErrorCallingRedHatSSO",
    "ErrorCallingSRTP",
    "FailedAuthenticating",
    "FailedChangingSQSVisibilityTimeout",
    "FailedDeletingFromSQS",
    "FailedDeterminingRoute",
    "FailedReceivingFromSQS",
    "FailedSendingToSQS",
    "FailedTransforming",
    "FailedValidating",
    "UnexpectedError",
    "ErrorCallingBESS",
    "FailedSigning",
    "FailedWritingToS3",
    "FailedRetrievingFromS3",
    "FailedDeletingFromS3",
    "Err201Received",
)

KeywordMapping = Mapping[str, Tuple[str, ...]]


def keyword_mapping(table: Mapping[str, object]) -> KeywordMapping:
    """Freeze a ``watch_id -> keywords`` table into a read-only mapping."""
    return MappingProxyType({
        str(watch_id): tuple(dict.fromkeys(str(k) for k in (keywords or ())))
        for watch_id, keywords in table.items()
    })


# watcher ids mapped to the error codes that trigger them; an empty entry
# means the alert cannot be traced back to a single error record
WATCHER_ERROR_MAPPING: KeywordMapping = keyword_mapping({
    "BMS_PRD1_DAILY_STATS": (),
    "BMS_PRD1_DispatcherDisabled": (),
    "BMS_PRD1_Err201Received": ("Err201Received",),
    "BMS_PRD1_FailedAuthenticating": ("FailedAuthenticating",),
    "BMS_PRD1_FailedCallingBESS": ("ErrorCallingBESS", "ReceivedBESSFailureResponse"),
    "BMS_PRD1_FailedCallingBMSComponent": ("ErrorCallingBMSComponent", "ReceivedBMSComponentFailureResponse"),
    "BMS_PRD1_FailedCallingBSGComponent": ("ErrorCallingBSG", "ReceivedBSGFailureResponse"),
    "BMS_PRD1_FailedCallingDataPlatform": ("ErrorCallingDataPlatform", "ReceivedDataPlatformFailureResponse"),
    "BMS_PRD1_FailedCallingSRTP": ("ErrorCallingSRTP", "ReceivedSRTPFailureResponse"),
    "BMS_PRD1_FailedChangingSQSVisibilityTimeout": ("FailedChangingSQSVisibilityTimeout",),
    "BMS_PRD1_FailedDeletingFromS3": ("FailedDeletingFromS3",),
    "BMS_PRD1_FailedDeletingFromSQS": ("FailedDeletingFromSQS",),
    "BMS_PRD1_FailedDeterminingRoute": ("FailedDeterminingRoute",),
    "BMS_PRD1_FailedReceivingFromSQS": ("FailedReceivingFromSQS",),
    "BMS_PRD1_FailedRetrievingFromS3": ("FailedRetrievingFromS3",),
    "BMS_PRD1_FailedSendingToSQS": ("FailedSendingToSQS",),
    "BMS_PRD1_FailedSigning": ("FailedSigning",),
    "BMS_PRD1_FailedTransforming": ("FailedTransforming",),
    "BMS_PRD1_FailedValidating": ("FailedValidating",),
    "BMS_PRD1_GeneralError": (),
    "BMS_PRD1_ReceivedGrayScaleImage": (),
    "BMS_PRD1_UnexpectedError": ("UnexpectedError",),
    "BMS_SUPPORT_TST1_FailedCallingBMSComponent": ("ErrorCallingBMSComponent", "ReceivedBMSComponentFailureResponse"),
})


class Settings(BaseSettings):
    # index patterns
    error_index_pattern: str = ERROR_INDEX_PATTERN
    watcher_index_pattern: str = WATCHER_INDEX_PATTERN
    watcher_id_prefix: str = "BMS_"
    watcher_lookback: str = "now-1M/M"

    # pagination
    page_size: int = DEFAULT_PAGE_SIZE

    # alert correlation
    correlation_window_seconds: float = 600.0
    correlation_candidate_size: int = 1
    # 0 means one join per available cpu
    correlation_max_parallel: int = 0
    correlation_progress_steps: int = 10

    # sentinel record defaults
    sentinel_environment: str = "prd1"
    sentinel_microservice: str = "unknown"

    # similarity
    similarity_workers: int = 0
    similarity_mask_noise: bool = True

    # layout
    layout_dims: int = 2
    layout_negative_policy: str = "clamp"
    layout_eigen_tolerance: float = 1e-9

    # snapshots
    output_dir: str = ALERTMAP_OUTPUT_DIR
    errors_message_output: str = ERRORS_MESSAGE_OUTPUT
    errors_coordinates_output: str = ERRORS_COORDINATES_OUTPUT
    alerts_watcher_output: str = ALERTS_WATCHER_OUTPUT
    alerts_coordinates_output: str = ALERTS_COORDINATES_OUTPUT

    api_host: str = "0.0.0.0"
    api_port: int = 4322
    ssl_certfile: Optional[str] = None
    ssl_keyfile: Optional[str] = None

    model_config = {
        "env_prefix": "ALERTMAP_",
        "extra": "ignore",
    }

    def max_parallel(self) -> int:
        if self.correlation_max_parallel > 0:
            return self.correlation_max_parallel
        return os.cpu_count() or 1


settings = Settings()
