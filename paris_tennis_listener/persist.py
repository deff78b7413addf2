import hashlib
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Protocol

from paris_tennis_listener import config
from paris_tennis_listener.models import ChangeResult

logger = logging.getLogger(__name__)


class FingerprintStore(Protocol):
    def load(self) -> str | None: ...

    def save(self, fingerprint: str) -> None: ...


class MemoryFingerprintStore:
    """Keeps the fingerprint in memory. Used by tests and one-off runs."""

    def __init__(self, fingerprint: str | None = None):
        self.fingerprint = fingerprint

    def load(self) -> str | None:
        return self.fingerprint

    def save(self, fingerprint: str) -> None:
        self.fingerprint = fingerprint


class FileFingerprintStore:
    """Stores the last fingerprint in a JSON file with timestamp metadata."""

    def __init__(self, path: str | None = None):
        self.path = path or config.STATE_FILE

    def ensure_data_dir(self):
        directory = os.path.dirname(self.path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory)

    def load(self) -> str | None:
        if not os.path.exists(self.path):
            logger.info("No state file found. Starting fresh.")
            return None
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError):
            logger.warning("Failed to load state file. Starting fresh.")
            return None

        if not isinstance(data, dict) or not isinstance(data.get("fingerprint"), str):
            logger.warning("State file has unexpected format. Starting fresh.")
            return None
        logger.info(f"Loaded fingerprint from state, last updated: {data.get('last_updated')}")
        return data["fingerprint"]

    def save(self, fingerprint: str) -> None:
        self.ensure_data_dir()
        data = {
            "last_updated": datetime.now(timezone.utc).isoformat(),
            "fingerprint": fingerprint,
        }
        try:
            with open(self.path, "w") as f:
                json.dump(data, f, indent=2)
            logger.info(f"Saved fingerprint to {self.path} on {data['last_updated']}")
        except IOError as e:
            logger.error(f"Failed to save state: {e}")


def to_jsonable(result: Any) -> Any:
    """Converts pydantic models (possibly nested in lists) to plain JSON data."""
    if hasattr(result, "model_dump"):
        return result.model_dump(mode="json", by_alias=True)
    if isinstance(result, (list, tuple)):
        return [to_jsonable(item) for item in result]
    return result


def canonical_json(result: Any) -> str:
    """Serialization independent of dict key order and whitespace. List order is kept."""
    return json.dumps(to_jsonable(result), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def compute_fingerprint(result: Any) -> str:
    return hashlib.sha256(canonical_json(result).encode("utf-8")).hexdigest()


def detect_change(result: Any, store: FingerprintStore, logger: logging.Logger) -> ChangeResult:
    """Compares `result` with the previous run and records it as the new state.

    The new fingerprint is saved even when nothing changed. A first run, with
    nothing stored, always counts as a change.
    """
    fingerprint = compute_fingerprint(result)
    previous = store.load()
    store.save(fingerprint)

    changed = previous is None or previous != fingerprint
    logger.info(f"Change detection: changed={str(changed).lower()} (fingerprint {fingerprint[:12]})")
    return ChangeResult(changed=changed, fingerprint=fingerprint)
