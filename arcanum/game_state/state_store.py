"""
Key-value persistence for toolkit state.

Each record is a JSON object saved under a stable key. Other toolkit pages
read the same keys, so the stored shape is an external interface.

Reads never fail: a missing, unreadable or corrupt record yields None and the
caller substitutes defaults. Writes are fire-and-forget: failures are logged
and the simulation carries on.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional
import json
import logging

logger = logging.getLogger(__name__)

TIMER_STATE_KEY = "arcanum-timer"
ENVIRONMENT_STATE_KEY = "arcanum-environment"


class StateStore(ABC):
    """Abstract key-value store for JSON-serializable records."""

    @abstractmethod
    def load(self, key: str) -> Optional[dict[str, Any]]:
        """
        Load a record.

        Returns:
            The stored object, or None if missing or unreadable
        """

    @abstractmethod
    def save(self, key: str, data: dict[str, Any]) -> None:
        """Store a record, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a record. Returns True if something was removed."""

    def keys(self) -> list[str]:
        return []


class JsonFileStateStore(StateStore):
    """
    Stores each key as a UTF-8 JSON file in a directory.

    Handles:
    - Creating the directory on first use
    - Treating unreadable files as missing
    - Logging (not raising) write failures
    """

    def __init__(self, directory: Optional[Path] = None):
        """
        Args:
            directory: Directory for state files. Defaults to ./data/
        """
        self.directory = Path(directory) if directory is not None else Path("./data")
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        safe_key = "".join(c for c in key if c.isalnum() or c in "-_.")
        if not safe_key:
            raise ValueError(f"Invalid state key: {key!r}")
        return self.directory / f"{safe_key}.json"

    def load(self, key: str) -> Optional[dict[str, Any]]:
        filepath = self._path_for(key)
        if not filepath.exists():
            logger.debug(f"No stored state for {key}")
            return None

        try:
            with open(filepath, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read state file {filepath}: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Ignoring state file {filepath}: expected an object, got {type(data).__name__}")
            return None
        return data

    def save(self, key: str, data: dict[str, Any]) -> None:
        filepath = self._path_for(key)
        try:
            payload = json.dumps(data, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.warning(f"Could not serialize state for {key}: {e}")
            return

        tmp_path = filepath.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(payload)
            tmp_path.replace(filepath)
        except OSError as e:
            logger.warning(f"Could not write state file {filepath}: {e}")
            return
        logger.debug(f"Saved state {key} to {filepath}")

    def delete(self, key: str) -> bool:
        filepath = self._path_for(key)
        if filepath.exists():
            filepath.unlink()
            logger.info(f"Deleted state file: {filepath}")
            return True
        return False

    def keys(self) -> list[str]:
        return sorted(p.stem for p in self.directory.glob("*.json"))


class InMemoryStateStore(StateStore):
    """
    Dictionary-backed store.

    Records are kept as JSON text so values go through the same
    serialization as the file store.
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._records: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._records[key] = value if isinstance(value, str) else json.dumps(value)

    def load(self, key: str) -> Optional[dict[str, Any]]:
        raw = self._records.get(key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Corrupt in-memory state for {key}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Ignoring in-memory state for {key}: expected an object")
            return None
        return data

    def save(self, key: str, data: dict[str, Any]) -> None:
        try:
            self._records[key] = json.dumps(data)
        except (TypeError, ValueError) as e:
            logger.warning(f"Could not serialize state for {key}: {e}")

    def delete(self, key: str) -> bool:
        return self._records.pop(key, None) is not None

    def keys(self) -> list[str]:
        return sorted(self._records)

    def raw(self, key: str) -> Optional[str]:
        """Stored JSON text for a key."""
        return self._records.get(key)
