"""
JSON snapshot store used to checkpoint retrieval results between pipeline runs.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, List, Optional, Sequence

from pydantic import BaseModel

from engine.exceptions import PersistenceFailed

log = logging.getLogger(__name__)


def _to_json(item: Any) -> Any:
    if isinstance(item, BaseModel):
        return item.model_dump(by_alias=True, mode="json")
    return item


class CheckpointStore:

    def __init__(self, directory: str | os.PathLike = "."):
        self.directory = Path(directory)

    def path(self, name: str) -> Path:
        return self.directory / name

    def exists(self, name: str) -> bool:
        return self.path(name).is_file()

    def load_if_present(self, name: str) -> Optional[List[Any]]:
        path = self.path(name)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PersistenceFailed(f"failed to read {path}: {exc}", cause=exc) from exc
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise PersistenceFailed(f"failed to decode {path}: {exc}", cause=exc) from exc
        if not isinstance(data, list):
            raise PersistenceFailed(f"{path} does not hold a list of records")
        log.info("loaded %d record(s) from %s", len(data), path)
        return data

    def save(self, name: str, records: Sequence[Any]) -> Path:
        path = self.path(name)
        tmp_name = None
        try:
            payload = json.dumps([_to_json(r) for r in records], indent=2)
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceFailed(f"failed to write {path}: {exc}", cause=exc) from exc
        log.info("wrote %d record(s) to %s", len(records), path)
        return path
