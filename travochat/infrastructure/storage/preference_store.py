"""
Preference Stores - IIdentityStore implementations
==================================================
In-memory store for tests and embedding, JSON-file store for the terminal
client (the file plays the role of browser local storage).
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional

from ...core.logger import get_logger
from ...domain.interfaces.storage import IIdentityStore

logger = get_logger(__name__)


class InMemoryIdentityStore(IIdentityStore):
    """Preferences kept for the lifetime of the process"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = str(value)

    def as_dict(self) -> Dict[str, str]:
        return dict(self._values)


class JsonFileIdentityStore(IIdentityStore):
    """
    Preferences persisted to a small JSON object on disk.

    The file is read once at construction and rewritten atomically (temp
    file + rename) on every set, so a crash never leaves a truncated file.
    A missing file is an empty store; an unreadable one is reported and
    treated as empty. A failed write is reported and the value is kept in
    memory only.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._values: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("preference_store.load_failed", {
                "path": str(self.path),
                "error": str(e),
                "error_type": type(e).__name__
            })
            return {}
        if not isinstance(data, dict):
            logger.warning("preference_store.invalid_format", {"path": str(self.path)})
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".prefs-", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(self._values, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = str(value)
        try:
            self._flush()
        except OSError as e:
            # The value stays available for this process
            logger.warning("preference_store.save_failed", {
                "path": str(self.path),
                "key": key,
                "error": str(e),
                "error_type": type(e).__name__
            })
            return
        logger.debug("preference_store.saved", {"key": key, "path": str(self.path)})
