# src/teamtask/persistence.py

"""
Durable key/value storage for the small subset of state that survives a restart.

Layout: one JSON object keyed by namespace ("auth-storage", "ui-storage").
Which fields go in a namespace is decided by each store's own
serialize/deserialize functions, not here.
"""

from __future__ import annotations

import contextlib
import copy
import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

AUTH_NAMESPACE = "auth-storage"
UI_NAMESPACE = "ui-storage"


class MemoryStorage:
    """In-process DurableStorage (tests, ephemeral runs)."""

    def __init__(self, initial: dict[str, dict[str, Any]] | None = None) -> None:
        self._data: dict[str, dict[str, Any]] = copy.deepcopy(initial or {})

    def read(self, namespace: str) -> dict[str, Any] | None:
        entry = self._data.get(namespace)
        return copy.deepcopy(entry) if entry is not None else None

    def write(self, namespace: str, data: dict[str, Any]) -> None:
        self._data[namespace] = copy.deepcopy(data)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        return copy.deepcopy(self._data)


class JsonFileStorage:
    """
    DurableStorage backed by a single JSON file.

    - Missing or corrupt file -> treated as empty (logged).
    - Writes go through a temp file + os.replace, then chmod 0600
      (the profile contains PII).
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._data: dict[str, dict[str, Any]] = self._load()

    def _load(self) -> dict[str, dict[str, Any]]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError):
            logger.exception("Failed to read durable state from %s; starting empty", self._path)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Durable state in %s is not an object; ignoring", self._path)
            return {}
        out: dict[str, dict[str, Any]] = {}
        for key, value in raw.items():
            if isinstance(key, str) and isinstance(value, dict):
                out[key] = value
        logger.info("Loaded durable state: %d namespaces from %s", len(out), self._path)
        return out

    def read(self, namespace: str) -> dict[str, Any] | None:
        entry = self._data.get(namespace)
        return copy.deepcopy(entry) if entry is not None else None

    def write(self, namespace: str, data: dict[str, Any]) -> None:
        self._data[namespace] = copy.deepcopy(data)
        self._flush()

    def _flush(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(json.dumps(self._data, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, self._path)
            with contextlib.suppress(OSError):
                os.chmod(self._path, 0o600)
        except OSError:
            logger.exception("Failed to write durable state to %s", self._path)
