import json
import logging
import os
import fcntl
from pathlib import Path
from typing import Any, Dict, List, Set

logger = logging.getLogger(__name__)

class JsonStore:
    """JSON file kept in memory and written back atomically."""

    def __init__(self, path: str, persist: bool = True):
        self.path = Path(path)
        self.persist = persist
        self.read_only = False
        self.data: Dict[str, Any] = {}
        self._load()

    def _load(self):
        if not self.path.exists():
            logger.info(f"No store file found at {self.path}, creating new.")
            return

        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            self.data = data
        except Exception as e:
            logger.error(f"Failed to load {self.path}: {e}. Starting fresh.", exc_info=True)

    def _serialize(self) -> Dict[str, Any]:
        return self.data

    def save(self):
        if not self.persist or self.read_only:
            return

        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, 'w') as f:
                try:
                    fcntl.flock(f, fcntl.LOCK_EX | fcntl.LOCK_NB)
                except BlockingIOError:
                    logger.warning(f"Could not acquire lock for {self.path}. Skipping save cycle.")
                    return

                try:
                    json.dump(self._serialize(), f, indent=2, sort_keys=True)
                    f.flush()
                    os.fsync(f.fileno())
                finally:
                    fcntl.flock(f, fcntl.LOCK_UN)

            os.rename(tmp_path, self.path)

        except OSError as e:
            logger.error(f"Failed to save {self.path}: {e}")
            # Keep serving from memory for the rest of this run
            self.read_only = True

class JsonSettingsStore(JsonStore):
    """Global or per-document reader settings."""

    def read_setting(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def save_setting(self, key: str, value: Any):
        self.data[key] = value

    def del_setting(self, key: str):
        self.data.pop(key, None)

    def flush(self):
        self.save()

class JsonCollectionStore(JsonStore):
    """Reader collections: collection name -> set of file paths."""

    def _load(self):
        super()._load()
        self.collections: Dict[str, Set[str]] = {}
        for name, paths in self.data.items():
            if isinstance(paths, (list, dict)):
                self.collections[name] = set(paths)
            else:
                logger.warning(f"Ignoring malformed collection '{name}' in {self.path}")

    def _serialize(self) -> Dict[str, List[str]]:
        return {name: sorted(paths) for name, paths in self.collections.items()}

    def names(self) -> List[str]:
        return sorted(self.collections)

    def contains(self, name: str, path: str) -> bool:
        return path in self.collections.get(name, ())

    def remove(self, name: str, path: str) -> bool:
        paths = self.collections.get(name)
        if not paths or path not in paths:
            return False
        paths.discard(path)
        return True
