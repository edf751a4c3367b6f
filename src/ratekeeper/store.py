"""Key-value stores that mirror the rate cache between runs."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol


class PersistentStore(Protocol):
    """Named mapping storage used to mirror the rate cache."""

    def load(self, name: str) -> dict[str, Any] | None: ...

    def save(self, name: str, mapping: dict[str, Any]) -> None: ...


def get_state_dir() -> Path:
    """Get the state directory, respecting RATEKEEPER_STATE_DIR env var."""
    env_path = os.environ.get("RATEKEEPER_STATE_DIR")
    if env_path:
        return Path(env_path)
    return Path.home() / ".ratekeeper"


class JsonFileStore:
    """
    Stores each named mapping as ``<state_dir>/<name>.json``.

    Writes go through a temporary file and an atomic rename, so a crash
    mid-write leaves the previous document intact.
    """

    def __init__(self, state_dir: str | Path | None = None):
        """
        Initialize JsonFileStore.

        Args:
            state_dir: Directory for state files (default: ~/.ratekeeper)
        """
        if state_dir is None:
            state_dir = get_state_dir()
        self.state_dir = Path(state_dir)

    def path_for(self, name: str) -> Path:
        return self.state_dir / f"{name}.json"

    def load(self, name: str) -> dict[str, Any] | None:
        """Load a mapping; None if the file is missing, unreadable or not a JSON object."""
        path = self.path_for(name)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError):
            return None
        return data if isinstance(data, dict) else None

    def save(self, name: str, mapping: dict[str, Any]) -> None:
        """Write a mapping. Raises OSError or TypeError on failure."""
        self.state_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(name)
        fd, tmp_path = tempfile.mkstemp(dir=self.state_dir, prefix=f"{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(mapping, f, indent=2)
            os.replace(tmp_path, path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise


class MemoryStore:
    """In-process store; contents are lost when the process exits."""

    def __init__(self, initial: dict[str, dict[str, Any]] | None = None):
        self._data: dict[str, dict[str, Any]] = {}
        for name, mapping in (initial or {}).items():
            self._data[name] = json.loads(json.dumps(mapping))

    def load(self, name: str) -> dict[str, Any] | None:
        mapping = self._data.get(name)
        # Round-trip through JSON so callers see the same shapes a file store yields
        return json.loads(json.dumps(mapping)) if mapping is not None else None

    def save(self, name: str, mapping: dict[str, Any]) -> None:
        self._data[name] = json.loads(json.dumps(mapping))
