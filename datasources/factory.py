"""
Factory for creating search connectors based on configuration.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from connectors.elasticsearch import ElasticsearchConnector


class DataSourceFactory:

    @staticmethod
    def create_search(config):
        from config import SEARCH_BACKEND_ELASTICSEARCH
        if config.search_backend == SEARCH_BACKEND_ELASTICSEARCH:
            return ElasticsearchConnector(
                config.search_url,
                timeout=config.search_timeout,
                username=config.search_username,
                password=config.search_password,
                retry_attempts=config.search_retry_attempts,
                retry_delay=config.search_retry_delay,
                pit_keep_alive=config.search_pit_keep_alive,
            )
        raise ValueError("Unsupported search backend")
