from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional
import logging
import os
import tempfile

from backoffice.core.config import settings
from backoffice.core.errors import StorageError
from backoffice.db.memory import PROCESS_STATE

logger = logging.getLogger(__name__)

class StorageBackend(ABC):
    """Key/value string storage, modelled on the browser's localStorage."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        pass


class ProcessGlobalBackend(StorageBackend):
    def __init__(self, state: Optional[Dict[str, Any]] = None):
        self._state = PROCESS_STATE if state is None else state

    def get_item(self, key: str) -> Optional[str]:
        value = self._state.get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        self._state[key] = value

    def remove_item(self, key: str) -> None:
        self._state.pop(key, None)


class FileBackend(StorageBackend):
    """One UTF-8 file per key under ``directory``; writes are atomic renames."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise StorageError(f"Invalid storage key '{key}'", key=key)
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read '{key}': {e}", key=key) from e

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write '{key}': {e}", key=key) from e

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Failed to remove '{key}': {e}", key=key) from e


def backend_from_settings() -> StorageBackend:
    if settings.STORE_BACKEND == "file":
        logger.info(f"Using file storage backend at {settings.STORE_DIR}")
        return FileBackend(settings.STORE_DIR)
    if settings.STORE_BACKEND != "memory":
        logger.warning(f"Unknown STORE_BACKEND '{settings.STORE_BACKEND}', falling back to memory")
    return ProcessGlobalBackend()
